from __future__ import annotations

import logging

from autocompress.core.config import load_settings


def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from autocompress.ui.main_window import MainWindow

    app = MainWindow(settings)
    app.mainloop()


if __name__ == "__main__":
    main()
