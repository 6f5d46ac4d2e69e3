import logging
import sys
from pathlib import Path
from typing import Optional

from .config import Config
from .db import init_db

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


class ClassroomHubApp:
    """Owns config, logging and the database; the API is built on top of it."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        watch_config: bool = True,
        db_url: Optional[str] = None,
        classroom_services=None,
        setup_logging: bool = True,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        self.manage_logging = setup_logging
        if setup_logging:
            self._setup_logging()

        # Database before the API so tables exist when routers are built
        init_db(self.config.data, db_url=db_url)

        # Tests inject fake services here; otherwise the plugin builds its own from config
        self.classroom_services = classroom_services

        from classroom_hub.api import create_app
        self.api = create_app(self)

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        logging_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(LOG_FORMAT)

        log_file = logging_config.get("file")
        if log_file:
            Path(log_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(Path(log_file).expanduser())
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        # Google client libraries are chatty at DEBUG
        logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

        self.logger.info(f"Logging initialized at level {logging.getLevelName(root_logger.level)}")

    def handle_config_change(self, new_config: dict) -> None:
        """Re-apply logging settings; plugins listen for their own sections."""
        self.logger.info("Applying configuration change")
        if not self.manage_logging:
            return
        try:
            self._setup_logging()
        except OSError as e:
            self.logger.error(f"Error applying logging config: {e}")

    def run(self) -> None:
        from classroom_hub.api import run_api_server
        try:
            run_api_server(self, self.api)
        finally:
            self.stop()

    def stop(self) -> None:
        self.config.cleanup()
