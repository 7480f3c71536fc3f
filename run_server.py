#!/usr/bin/env python3
"""
Run the LaunchMint HTTP service
"""

import asyncio

from aiohttp import web

from launchmint import __version__
from launchmint.api import create_app
from launchmint.config import Settings, setup_logging
from launchmint.models import Platform


def print_header(settings: Settings):
    """Print the startup banner"""
    print("\n" + "=" * 60)
    print(f"🚀 LAUNCHMINT v{__version__} - SOLANA TOKEN LAUNCHER")
    print("=" * 60)
    print(f"🔗 RPC: {settings.rpc_url}")
    print(f"🧩 Platforms: {', '.join(p.label for p in Platform)}")
    print(f"🔑 Bags API key: {'configured' if settings.bags_api_key else 'per request'}")
    print(f"💾 Launch log: {settings.launch_db_path or 'in memory'}")
    print("=" * 60 + "\n")


async def main():
    settings = Settings.from_env()
    logger = setup_logging(settings.log_level)
    print_header(settings)

    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, '0.0.0.0', settings.port)
    await site.start()

    print(f"✅ Server running on port {settings.port}")
    print(f"📌 POST http://localhost:{settings.port}/api/tokens/create")
    logger.info(f"LaunchMint listening on port {settings.port}")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Server stopped by user")
