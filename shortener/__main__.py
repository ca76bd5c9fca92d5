"""
Run the service with uvicorn.

Command-line flags override environment variables, which override the JSON
config file named by CONFIG.

    python -m shortener -a 0.0.0.0:8080 -b https://sho.rt -d sqlite+aiosqlite:///urls.db
"""

import argparse
import os

import uvicorn

from shortener.core.log_config import configure_logging
from shortener.core.setting import get_settings

FLAG_ENV = {
    "server_address": "SERVER_ADDRESS",
    "base_url": "BASE_URL",
    "file_storage_path": "FILE_STORAGE_PATH",
    "database_dsn": "DATABASE_DSN",
    "trusted_subnet": "TRUSTED_SUBNET",
    "config": "CONFIG",
}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="shortener", description="URL shortener service")
    parser.add_argument("-a", dest="server_address", help="host:port to listen on")
    parser.add_argument("-b", dest="base_url", help="base URL of short links")
    parser.add_argument("-f", dest="file_storage_path", help="path of the JSON-lines log")
    parser.add_argument("-d", dest="database_dsn", help="database DSN")
    parser.add_argument("-t", dest="trusted_subnet", help="CIDR allowed to read stats")
    parser.add_argument("-c", "--config", dest="config", help="JSON config file")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    # The app is built by uvicorn's factory, so flags travel through the environment
    for attr, env_name in FLAG_ENV.items():
        value = getattr(args, attr)
        if value:
            os.environ[env_name] = value
    get_settings.cache_clear()

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "shortener.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
