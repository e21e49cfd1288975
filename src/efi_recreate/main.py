import sys

from PySide6.QtWidgets import QApplication

# Prefer absolute imports (work with PyInstaller); fallback to relative for editors
try:
    from efi_recreate.gui.app import RecreateApp
    from efi_recreate.cli import build_parser, run_cli
    from efi_recreate.logger import setup_logger_handler
    from efi_recreate.platforms.common import elevate_if_needed
except ImportError:  # pragma: no cover
    from .gui.app import RecreateApp
    from .cli import build_parser, run_cli
    from .logger import setup_logger_handler
    from .platforms.common import elevate_if_needed


def main():
    # Without --gui the recipe runs straight from the terminal.
    parser = build_parser()
    args = parser.parse_args()
    setup_logger_handler(verbose=args.verbose, log_file=args.log_file)
    if not args.gui:
        sys.exit(run_cli(args))

    # GUI mode: ensure we are root before touching NVRAM; trigger elevation with GUI prompt
    if elevate_if_needed(want_gui=True):
        # Elevated instance has been launched; exit current
        return

    app = QApplication(sys.argv[:1])
    w = RecreateApp(config_path=args.config, on_error=args.on_error)
    w.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
