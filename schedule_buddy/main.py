"""Main entry point for Schedule Buddy application.

This module provides the main entry point for the Schedule Buddy desktop
reminder application using the MVP (Model-View-Presenter) pattern.
"""

import sys
from argparse import ArgumentParser, RawDescriptionHelpFormatter

from PyQt6.QtWidgets import QApplication

from .models.configuration_model import ConfigurationModel
from .presenters.reminder_presenter import ReminderPresenter
from .utils.logging_config import setup_logging
from .utils.structured_logging import get_structured_logger
from .views.reminder_view import ReminderView


def create_argument_parser() -> ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        ArgumentParser: Configured argument parser
    """
    parser = ArgumentParser(
        description="Schedule Buddy - Desktop Schedule Reminders",
        formatter_class=RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                # Run with default settings
  %(prog)s -v                             # Run with verbose logging
  %(prog)s --data-file ~/schedules.json   # Use a specific schedules file
""",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (use -v for info, -vv for debug, -vvv for trace)",
    )

    parser.add_argument("--log-file", type=str, help="Log to file (in addition to console)")

    parser.add_argument("--config-file", type=str, help="Path of the configuration file")

    parser.add_argument("--data-file", type=str, help="Path of the schedules file (overrides the configuration)")

    parser.add_argument("--no-sound", action="store_true", help="Do not play a sound with reminders")

    parser.add_argument("--no-redaction", action="store_true", help="Log schedule content in full")

    return parser


def apply_quit_policy(app: QApplication, view: ReminderView) -> bool:
    """Keep the app alive after the window closes only when the tray can bring it back.

    Returns:
        True if the app keeps running in the tray
    """
    keeps_running = view.keeps_running_in_tray
    app.setQuitOnLastWindowClosed(not keeps_running)
    return keeps_running


def main() -> None:
    """Main entry point for the Schedule Buddy application."""
    parser = create_argument_parser()
    args = parser.parse_args()

    setup_logging(
        verbosity=args.verbose,
        log_file=args.log_file,
        log_to_console=True,
        redact_sensitive_data=not args.no_redaction,
    )

    logger = get_structured_logger(__name__)

    config_model = ConfigurationModel(args.config_file)
    overrides = {}
    if args.data_file:
        overrides["data_file"] = args.data_file
    if args.no_sound:
        overrides["sound_enabled"] = False
    if overrides:
        config_model.update_configuration(save=False, **overrides)
    config = config_model.config_data

    logger.info(
        "Schedule Buddy starting",
        verbosity_level=args.verbose,
        data_file=str(config_model.data_file),
        sound_enabled=config.sound_enabled,
        log_file=args.log_file or "console_only",
    )

    try:
        app = QApplication(sys.argv)
        app.setApplicationName("Schedule Buddy")

        with logger.context(component="presenter_initialization"):
            view = ReminderView(minimize_to_tray=config.minimize_to_tray)
            if not apply_quit_policy(app, view) and config.minimize_to_tray:
                logger.warning("System tray unavailable, closing the window quits the app")
            presenter = ReminderPresenter(config_model, view=view)
            presenter.start()
            view.show()
            logger.info("Main window initialized and displayed")

        logger.info("Starting Qt event loop")
        exit_code = app.exec()

        presenter.shutdown()
        logger.info("Application shutting down", exit_code=exit_code)
        sys.exit(exit_code)

    except Exception as e:
        logger.exception("Application startup failed", error_type=type(e).__name__, error_message=str(e))
        raise


if __name__ == "__main__":
    main()
