"""
FolioAuth Web API
=================
WSGI entry point for deployment (``gunicorn web.backend.app:app``).

Environment:
    FOLIOAUTH_JWT_SECRET    token signing secret (>= 32 chars)
    FOLIOAUTH_*             configuration overrides, see AuthConfig
    PORT                    listen port for the development server
"""

import os

from folioauth.core.config import AuthConfig
from folioauth.core.logging import configure_root_logger
from folioauth.web import create_app


config = AuthConfig.get_instance()
config.ensure_directories()

configure_root_logger(
    log_dir=config.paths.log_dir,
    level=config.logging.level,
    enable_console=config.logging.enable_console,
    enable_file=config.logging.enable_file,
    enable_json=config.logging.enable_json,
    max_file_size=config.logging.max_file_size_bytes,
    backup_count=config.logging.backup_count,
)

app = create_app(config)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, threaded=True)
