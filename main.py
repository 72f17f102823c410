import asyncio
import os
import sys
from pathlib import Path
import logging

from config.loader import load_settings, is_config_complete


def main() -> None:
    project_root = Path(__file__).parent
    # Basic logging config
    logging.basicConfig(
        level=os.getenv("KIROBOT_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings(project_root)

    if not is_config_complete(settings):
        print("Configuration incomplete. Set GEMINI_KEY in .env (see .env.example).")
        sys.exit(1)

    from bot.whatsapp_bot import run_bot

    print(f"Configuration looks good. Status page on port {settings.port}.")
    asyncio.run(run_bot())


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)
