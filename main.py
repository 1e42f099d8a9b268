#!/usr/bin/env python3
"""
Discord Invite Tracker Bot - Main Entry Point
"""

import os
import logging
import discord
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# Setup logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

logger = logging.getLogger(__name__)

def main():
    """Main function to start the bot"""
    bot = None
    try:
        # Import bot after environment is loaded
        from bot import create_bot
        from web_server import create_app, run_web_server
        from utils.config import load_settings
        from utils.translator import load_translations
        from threading import Thread

        settings = load_settings()

        # Validate environment
        if not settings.discord_token:
            logger.error("❌ DISCORD_TOKEN environment variable not set!")
            return

        if not settings.mongo_uri:
            logger.error("❌ MONGO_URI environment variable not set!")
            return

        logger.info(f"⚙️ Validation period: {settings.validation_period_days:g} day(s)")
        logger.info(f"⚙️ Validation check interval: {settings.validation_check_interval_minutes:g} minute(s)")
        logger.info(f"⚙️ Locale: {settings.locale}")

        load_translations(os.getenv('LANG_FILE') or os.path.join(os.path.dirname(os.path.abspath(__file__)), 'lang.yaml'),
                          settings.locale)

        logger.info("🚀 Starting Discord Invite Tracker Bot...")

        bot = create_bot(settings)

        # Start web server in background thread
        app = create_app(bot)
        web_thread = Thread(target=run_web_server, args=(app, settings.web_port))
        web_thread.daemon = True
        web_thread.start()
        logger.info(f"🌐 Web server started on port {settings.web_port}")

        # Start the bot
        logger.info("🤖 Starting Discord bot...")
        bot.run(settings.discord_token, log_handler=None)

    except KeyboardInterrupt:
        logger.info("👋 Bot stopped by user")
    except SystemExit:
        logger.info("🔄 Bot shutting down")
    except (discord.LoginFailure, discord.PrivilegedIntentsRequired) as e:
        logger.error(f"❌ Failed to login to Discord: {str(e)}")
        logger.error("Check DISCORD_TOKEN and that the Members and Invites intents are enabled in the Developer Portal")
    except Exception as e:
        logger.error(f"❌ Fatal error: {str(e)}", exc_info=True)
        raise
    finally:
        if bot is not None and getattr(bot, 'mongo_client', None):
            bot.mongo_client.close()
            logger.info("🔌 MongoDB connection closed")

if __name__ == '__main__':
    main()
