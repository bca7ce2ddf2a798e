"""Command line interface for Glean OAuth authentication.

Usage:
    glean-auth login                      # Run the device authorization flow
    glean-auth status                     # Authorize or refresh if needed
    glean-auth refresh                    # Refresh the stored access token
    glean-auth discover                   # Discover and cache OAuth metadata
    glean-auth setup-remote --target agents
"""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from .auth import Authenticator
from .core.config import Settings, TokenConfig
from .utils.errors import AuthError, GleanAuthError
from .utils.logging_config import setup_logging


async def login(auth: Authenticator, args: argparse.Namespace) -> None:
    await auth.force_authorize()
    print("Authorized.")


async def status(auth: Authenticator, args: argparse.Namespace) -> None:
    present = await auth.ensure_auth_token_presence()
    print("Access token present." if present else "No access token.")


async def refresh(auth: Authenticator, args: argparse.Namespace) -> None:
    tokens = await auth.force_refresh_tokens()
    expiry = tokens.expires_at.isoformat() if tokens.expires_at else "never"
    print(f"Refreshed. Access token expires: {expiry}")


async def discover(auth: Authenticator, args: argparse.Namespace) -> None:
    config = await auth.attempt_upgrade_config_to_oauth(await auth.get_config())
    if isinstance(config, TokenConfig):
        print("Using a Glean API token; OAuth discovery is not needed.")
        return
    print(f"Issuer:                 {config.issuer}")
    print(f"Client id:              {config.client_id}")
    print(f"Device authorization:   {config.authorization_endpoint}")
    print(f"Token endpoint:         {config.token_endpoint}")


async def setup_remote(auth: Authenticator, args: argparse.Namespace) -> None:
    for path in await auth.setup_mcp_remote(args.target):
        print(f"Wrote {path}")


COMMANDS = {
    "login": (login, "Run the device authorization flow and store the tokens"),
    "status": (status, "Ensure an access token is present, authorizing or refreshing as needed"),
    "refresh": (refresh, "Refresh the stored access token"),
    "discover": (discover, "Discover the OAuth configuration and cache it"),
    "setup-remote": (setup_remote, "Write credentials for the mcp-remote proxy"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glean-auth",
        description="Authenticate with Glean using the OAuth device authorization flow.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (_, help_text) in COMMANDS.items():
        subparser = subparsers.add_parser(name, help=help_text)
        if name == "setup-remote":
            subparser.add_argument(
                "--target",
                choices=["agents", "default"],
                default="default",
                help="Glean MCP endpoint mcp-remote connects to",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run the command.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
        setup_logging("DEBUG" if args.verbose else settings.log_level)
        command, _ = COMMANDS[args.command]
        asyncio.run(command(Authenticator(settings), args))
    except AuthError as e:
        print(f"Error [{e.code.value}]: {e}", file=sys.stderr)
        return 1
    except GleanAuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
