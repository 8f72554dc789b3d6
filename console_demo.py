"""
Interactive console chat against the real conversation pipeline.

Runs the same ``ConversationSession`` the HTTP API uses, keeping the
history locally the way the web widget does: every user message is
followed by the classification blob and the bot reply. Needs the same
API credentials as the server.

Usage:
    python console_demo.py
    python console_demo.py --scenario tracking
    python console_demo.py --scenario address
"""

import argparse
from typing import Optional

from support_bot.config import settings
from support_bot.conversation.session import ConversationSession
from support_bot.schemas.classification_schema import ConversationTurn, Role

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """Terminal front end that accumulates conversation history."""

    SCENARIOS: dict[str, list[str]] = {
        "tracking": [
            "Hi! Where is my order?",
            "#1234 and my email is customer@example.com",
            "thanks!",
        ],
        "address": [
            "I need to change the delivery address of my order",
            "Order #1234, customer@example.com",
            "Calle Mayor 1, 28013 Madrid",
            "yes",
        ],
        "sizing": [
            "What size should I get for the Without Shame crewneck?",
            "I'm 1.78 and I like it loose",
        ],
        "restock": [
            "When will the Without Shame hoodie be back in size M?",
            "customer@example.com",
        ],
    }

    MAX_INPUT_LENGTH = 1000

    def __init__(self, session: Optional[ConversationSession] = None) -> None:
        if session is None:
            from support_bot.server import build_session

            session = build_session()
        self.session = session
        self.history: list[ConversationTurn] = []

    def bot_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.store.assistant_name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.store.name.upper()} SUPPORT - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def send(self, text: str) -> str:
        """Answer one message and append it to the local history."""
        result = self.session.handle(text, self.history)
        self.history.append(ConversationTurn(role=Role.USER, content=text))
        if result.classification is not None:
            self.history.append(ConversationTurn(
                role=Role.ASSISTANT,
                content=result.classification.model_dump_json(),
            ))
            params = {k: v for k, v in result.classification.parameters.model_dump().items() if v}
            self.system_log(f"Intent: {result.classification.intent.value} {params}")
        self.history.append(ConversationTurn(role=Role.ASSISTANT, content=result.reply))
        return result.reply

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            self.bot_say(self.send(step))
        print(f"\n{DIM}  {len(self.history)} turns recorded{RESET}")

    def run(self) -> None:
        self._banner("Console chat (type 'quit' to exit)")
        while True:
            user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.bot_say("That was quite long. Could you keep it brief for me?")
                continue
            self.bot_say(self.send(user_input))


def main() -> None:
    parser = argparse.ArgumentParser(description="Console support chat")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    console = ConsoleSession()
    if args.scenario:
        console.run_scenario(args.scenario)
    else:
        console.run()


if __name__ == "__main__":
    main()
