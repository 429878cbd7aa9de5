#!/usr/bin/env python3
"""
Trivia Quiz Bot - Main Entry Point

Runs the Discord trivia quiz bot against the Open Trivia Database.

Usage:
    python main.py

Configuration:
    Copy config.example.json to config.json, then set the Discord bot token
    and adjust the quiz pacing and question source sections as needed.

Environment Variables:
    DISCORD_BOT_TOKEN: Discord bot token (overrides config.json)
    QUIZ_CONFIG_PATH: Path to the config file (default: config.json)
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger("trivia_quiz.main")

TOKEN_PLACEHOLDER = "YOUR_DISCORD_BOT_TOKEN_HERE"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StartupError(Exception):
    """Raised when the bot cannot start because of missing or broken configuration."""
    pass


def load_config(config_path=None):
    """
    Read the JSON config file.

    Raises:
        StartupError: If the file is missing, unreadable or not valid JSON
    """
    path = Path(config_path or os.getenv('QUIZ_CONFIG_PATH', 'config.json'))
    if not path.exists():
        raise StartupError(f"{path} not found. Copy config.example.json to {path} and set the bot token.")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise StartupError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise StartupError(f"Could not read {path}: {e}") from e

    if not isinstance(config, dict):
        raise StartupError(f"{path} must contain a JSON object")
    logger.debug(f"Loaded configuration from {path}")
    return config


def get_bot_token(config):
    """
    Resolve the bot token, preferring the environment over the config file.

    Raises:
        StartupError: If no usable token is configured
    """
    token = os.getenv('DISCORD_BOT_TOKEN')
    if token:
        return token

    token = config.get('bot', {}).get('token')
    if not token or token == TOKEN_PLACEHOLDER:
        raise StartupError("Discord bot token not configured. Set DISCORD_BOT_TOKEN or bot.token in config.json.")
    return token


def setup_logging_from_config(config):
    """Configure console and file logging from the ``logging`` section."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))
    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "bot.log", encoding='utf-8')
        ],
        force=True
    )

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)


async def run_bot_with_config():
    config = load_config()
    setup_logging_from_config(config)
    token = get_bot_token(config)

    from trivia_quiz.bot import run_bot
    await run_bot(token, config)


def main():
    # Console logging until the config file says otherwise
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logger.info("Starting Trivia Quiz Bot...")
    try:
        asyncio.run(run_bot_with_config())
    except StartupError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
