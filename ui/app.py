from __future__ import annotations
import logging
import sys

from PySide6.QtWidgets import QApplication
from PySide6.QtNetwork import QNetworkInformation

from core.config import load_config
from core.logging_config import setup_logging
from core.services.container import AppServices
from ui.main_window import MainWindow
from ui.storage_watcher import StorageWatcher
from ui.widgets.conflict_dialog import QtConflictPrompt
from ui.widgets.migration_dialog import QtMigrationPrompt
from ui.widgets.notifier import MessageBoxNotifier

LOG = logging.getLogger(__name__)

def _watch_network(services: AppServices, window: MainWindow):
    if not QNetworkInformation.loadDefaultBackend():
        LOG.info("Pas de backend QNetworkInformation: état réseau non suivi")
        return
    info = QNetworkInformation.instance()

    def on_reachability(reachability):
        online = reachability == QNetworkInformation.Reachability.Online
        services.sync.handle_reachability_change(online)
        if online:
            window.refresh()

    info.reachabilityChanged.connect(on_reachability)
    services.sync.set_online(info.reachability() == QNetworkInformation.Reachability.Online)

def main() -> int:
    config = load_config()
    setup_logging(config)

    app = QApplication(sys.argv)
    notifier = MessageBoxNotifier()
    services = AppServices.build(config, notifier=notifier)

    window = MainWindow(services)
    notifier.parent = window

    conflict_prompt = QtConflictPrompt(window)
    conflict_prompt.resolver = services.conflicts
    services.conflicts.prompt = conflict_prompt

    migration_prompt = QtMigrationPrompt(window)
    migration_prompt.flow = services.migration
    services.migration.prompt = migration_prompt

    watcher = StorageWatcher(services.detector, window)
    _watch_network(services, window)

    window.show()
    if not services.data.dry_run:
        services.migration.check()
    try:
        return app.exec()
    finally:
        watcher.deleteLater()
        services.close()

if __name__ == "__main__":
    sys.exit(main())
