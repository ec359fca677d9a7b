from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.theme import Theme

from pairchat.config import DEFAULT_URI
from pairchat.core.context import RelayMode
from pairchat.core.session_manager import SessionManager
from pairchat.utils.error_codes import ChatClientError
from pairchat.utils.validators import validate_username

custom_theme = Theme({
    "info": "dim cyan",
    "warning": "magenta",
    "danger": "bold red",
    "success": "bold green",
    "chat_peer": "green",
    "chat_self": "cyan",
})

console = Console(theme=custom_theme)

PAIRED_HELP = "Type to chat. /skip for a new partner, /quit to leave."
DIRECT_HELP = "/msg <user> <text>, /users, /history <user>, /quit"


class PairChatCLI:
    def __init__(self, uri=DEFAULT_URI, mode=RelayMode.PAIRED):
        self.mode = RelayMode(mode)
        self.session_manager = SessionManager(self.ui_callback, uri=uri, mode=self.mode)
        self.session = PromptSession()
        self.running = True

    def ui_callback(self, event_type, data=None):
        # Called from the asyncio loop when state changes or events arrive
        if event_type == "CONNECTING":
            console.print("[info]Connecting to relay...[/info]")
        elif event_type == "SEARCHING":
            console.print("[info]Waiting for a partner...[/info]")
        elif event_type == "PAIRED":
            console.print(Panel(f"[success]Connected with {escape(data)}[/success]\n[dim]{PAIRED_HELP}[/dim]", expand=False))
        elif event_type == "SKIPPED":
            console.print("[warning]Your partner skipped.[/warning]")
        elif event_type == "PARTNER_LEFT":
            console.print("[warning]Your partner left.[/warning]")
        elif event_type == "MESSAGE":
            sender, text = data
            console.print(f"[chat_peer]{escape(sender)}:[/chat_peer] {escape(text)}")
        elif event_type == "ONLINE":
            users, total = data
            console.print(Panel(f"[success]Online ({total} total)[/success]: {escape(', '.join(users)) or 'nobody else yet'}\n[dim]{DIRECT_HELP}[/dim]", expand=False))
        elif event_type == "USER_JOINED":
            console.print(f"[info]{escape(data[0])} joined ({data[1]} online)[/info]")
        elif event_type == "USER_LEFT":
            console.print(f"[info]{escape(data[0])} left ({data[1]} online)[/info]")
        elif event_type == "USER_LIST":
            console.print(f"[info]Online: {escape(', '.join(data)) or 'nobody else'}[/info]")
        elif event_type == "DIRECT_MESSAGE":
            sender, text = data
            console.print(f"[chat_peer]{escape(sender)}:[/chat_peer] {escape(text)}")
        elif event_type == "MESSAGE_SENT":
            recipient, text = data
            console.print(f"[chat_self]You -> {escape(recipient)}:[/chat_self] {escape(text)}")
        elif event_type == "HISTORY":
            counterpart, history = data
            if not history:
                console.print(f"[info]No messages with {escape(counterpart)} yet.[/info]")
            for entry in history:
                console.print(f"[dim]{entry.get('timestamp', '')}[/dim] {escape(entry.get('sender', ''))}: {escape(entry.get('message', ''))}")
        elif event_type == "DISCONNECTED":
            console.print("[danger]Disconnected from relay.[/danger]")
            self.running = False
        elif event_type == "DESTROYED":
            console.print("[danger]Session closed. Exiting...[/danger]")
            self.running = False
        elif event_type == "ERROR":
            console.print(f"[danger]Error: {escape(str(data))}[/danger]")

    async def run(self):
        console.clear()
        console.print(Panel.fit(f"[bold white]PAIRCHAT[/bold white]\n[dim]{self.mode.value} mode[/dim]", style="blue"))

        # 1. Get username
        while True:
            username = await self.session.prompt_async("Username: ")
            username = username.strip()
            if validate_username(username):
                break
            console.print("[warning]Invalid name. Use letters, digits, _ . - (max 32).[/warning]")

        # 2. Start session
        try:
            await self.session_manager.start_session(username)
        except ChatClientError as e:
            console.print(f"[danger]Failed to start: {e}[/danger]")
            return

        # 3. Chat loop
        with patch_stdout():
            while self.running:
                try:
                    line = await self.session.prompt_async("> ")
                except (EOFError, KeyboardInterrupt):
                    await self.session_manager.destroy_session()
                    break
                if not self.running:
                    break
                if not await self.session_manager.handle_input(line):
                    break
