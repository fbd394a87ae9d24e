"""
SugarBox Feed Core - command line entry point

Loads the first page of home feeds, prints one line per section and warms
the image cache with the first thumbnail of each rail.

Usage: python main.py [--debug|-d] [--verbose|-v] [--pages N]
"""
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from core.logging.logger import setup_logging, get_logger
from core.network.path_monitor import NetworkPathMonitor
from core.settings.settings_manager import SettingsManager
from engine.home_context import build_home_context
from engine.home_view_model import HomeStatus, HomeStatusKind

logger = get_logger(__name__)

GIVE_UP_MS = 60_000


def parse_pages(argv) -> int:
    """Read ``--pages N`` from argv (default 1)."""
    if '--pages' in argv:
        idx = argv.index('--pages')
        try:
            return max(1, int(argv[idx + 1]))
        except (IndexError, ValueError):
            logger.warning("Ignoring malformed --pages argument")
    return 1


def run_home(app: QCoreApplication, pages: int) -> int:
    settings = SettingsManager()
    NetworkPathMonitor.load_backend()
    context = build_home_context(settings)
    vm = context.view_model
    exit_code = [0]

    def _print_rows() -> None:
        for row in range(vm.row_count()):
            rail = vm.rail_data(row)
            print(f"{row:3d} {vm.section_kind(row).name:<9} {rail.title} ({len(rail.rail_assets)} images)")
            if rail.rail_assets:
                context.image_cache.fetch(context.image_url(rail.rail_assets[0]))

    def _on_status(status: HomeStatus) -> None:
        logger.info("Status: %s", status)
        if status.kind is HomeStatusKind.FAILED:
            print(f"Fetch failed: {status.error.value}", file=sys.stderr)
            exit_code[0] = 2
            app.quit()
        elif status.kind is HomeStatusKind.EMPTY:
            print("No feeds")
            app.quit()
        elif status.kind is HomeStatusKind.FETCHED:
            if vm.paginator.page + 1 < pages:
                vm.viewing_item_at(vm.row_count() - 1)
                return
            _print_rows()
            # Let the warm-up downloads land before exiting.
            QTimer.singleShot(2000, app.quit)

    vm.status_changed.connect(_on_status)
    vm.bind()
    vm.reset()
    QTimer.singleShot(GIVE_UP_MS, app.quit)

    try:
        app.exec()
    finally:
        context.shutdown()
    return exit_code[0]


def main():
    """Main entry point."""
    debug_mode = '--debug' in sys.argv or '-d' in sys.argv
    verbose_mode = '--verbose' in sys.argv or '-v' in sys.argv
    setup_logging(debug=debug_mode, verbose=verbose_mode)

    logger.info("=" * 60)
    logger.info("SugarBox Feed Core Starting")
    logger.info("=" * 60)

    app = QCoreApplication(sys.argv)
    app.setApplicationName("FeedCore")
    app.setOrganizationName("SugarBox")

    exit_code = 0
    try:
        exit_code = run_home(app, parse_pages(sys.argv))
    except Exception as e:
        logger.exception(f"Fatal error in main: {e}")
        exit_code = 1

    logger.info(f"SugarBox Feed Core Exiting (code={exit_code})")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
