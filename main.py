# main.py
# Punto de entrada: IMAP -> busca correos no leídos -> guarda sus adjuntos
from __future__ import annotations
import logging
import time
from config.settings import Settings
from domain.errors import ConfigError, MailboxConnectionError, NoMatchError
from interface_adapters.controllers.fetch_controller import FetchController

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_MATCH = 1
EXIT_CONNECTION = 2
EXIT_CONFIG = 3


def run(controller: FetchController) -> int:
    try:
        result = controller.run_once()
    except NoMatchError as exc:
        logger.error("%s", exc)
        return EXIT_NO_MATCH
    except MailboxConnectionError as exc:
        logger.error("Error de conexión: %s", exc)
        return EXIT_CONNECTION

    if result.paths:
        print("Files:")
        for fp in result.paths:
            print(fp)
    logger.info("Done!")
    return EXIT_OK


def main() -> int:
    settings = Settings()
    try:
        settings.validate()
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG

    controller = FetchController(settings=settings)

    logger.info("=== Mail Attachments Fetcher ===")
    logger.info("IMAP host=%s inbox=%s destino=%s", settings.IMAP_HOST, settings.IMAP_FOLDER_INBOX, settings.attach_dir_path())
    if settings.POLL_INTERVAL <= 0:
        return run(controller)

    while True:
        try:
            run(controller)
        except Exception:
            logger.exception("Error en ciclo de polling")
        time.sleep(settings.POLL_INTERVAL)


if __name__ == "__main__":
    raise SystemExit(main())
