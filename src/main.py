#!/usr/bin/env python3
"""
Main entry point for the Twitch chat bot
"""

import asyncio
import logging
import sys

import aiohttp

from .api.auth import AuthenticatedClient
from .api.twitch import TwitchAPI
from .bot.core import ChatBot
from .config.loader import load_login
from .errors.handling import log_error
from .errors.internal import InternalError

# Configure logging after imports to prevent other modules from configuring it
from .logging_config import LoggerConfigurator

configurator = LoggerConfigurator()
configurator.configure()


async def main() -> None:
    """Load credentials, authenticate both accounts and run the bot.

    Raises:
        SystemExit: The login file is unusable or a token is rejected.
    """
    print("🚀 Starting Twitch chat bot")
    login = load_login()
    try:
        async with aiohttp.ClientSession() as session:
            api = TwitchAPI(session)
            try:
                bot = await AuthenticatedClient.authenticate(
                    api, login.client_id, login.bot_token
                )
                broadcaster = await AuthenticatedClient.authenticate(
                    api, login.client_id, login.broadcaster_token
                )
            except InternalError as e:
                log_error("Token validation failed", e)
                sys.exit(1)
            logging.info(
                f"🔑 Authenticated bot={bot.login} broadcaster={broadcaster.login}"
            )
            await ChatBot(bot, broadcaster).run()
    except asyncio.CancelledError:
        raise
    except KeyboardInterrupt:
        pass
    finally:
        logging.info("✅ Application shutdown complete")


def run() -> None:
    """Synchronous entry point for the application.

    Raises:
        SystemExit: If a critical error occurs during execution.
    """
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except asyncio.CancelledError:
        sys.exit(0)
    except Exception as e:
        log_error("Top-level error", e)
        sys.exit(1)


if __name__ == "__main__":
    run()
