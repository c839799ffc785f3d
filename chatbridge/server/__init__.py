"""aiohttp web server hosting the Bot Framework webhook."""
