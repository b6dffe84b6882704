from __future__ import annotations

import logging

from tienda.application.container import build_container
from tienda.config import get_app_paths
from tienda.logging_config import setup_logging
from tienda.ui.app import App


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    container = build_container(paths)
    app = App(container)
    app.mainloop()


if __name__ == "__main__":
    main()
