import argparse
import logging
import sys
from classroom_hub.core.app import ClassroomHubApp, LOG_FORMAT


def setup_basic_logging():
    """Setup basic stdout logging before config is loaded"""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)
        logging.debug("Basic logging initialized")


def main(argv=None):
    setup_basic_logging()

    parser = argparse.ArgumentParser(description='Classroom Hub API server')
    parser.add_argument('--config',
                        help='Path to config file (default: ~/.classroom_hub/config.yaml)')
    parser.add_argument('--no-watch', action='store_true',
                        help='Do not reload the config file when it changes')

    args = parser.parse_args(argv)

    app = ClassroomHubApp(config_path=args.config, watch_config=not args.no_watch)
    app.run()


if __name__ == "__main__":
    main()
