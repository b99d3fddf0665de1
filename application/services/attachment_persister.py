# application/services/attachment_persister.py
from __future__ import annotations
import logging
from typing import Iterable

from domain.errors import PersistError
from domain.models import AttachmentCandidate, ExtractionResult
from infrastructure.filesystem.storage import AttachmentStorage

logger = logging.getLogger(__name__)


def persist_attachments(storage: AttachmentStorage, candidates: Iterable[AttachmentCandidate]) -> ExtractionResult:
    """
    Guarda cada adjunto en el directorio de destino (sobrescribe si ya existe).
    Un fallo de escritura se anota en `errors` y se sigue con el siguiente. Si dos
    adjuntos del mismo lote acaban en el mismo fichero, gana el último y se avisa.
    """
    result = ExtractionResult()
    candidates = list(candidates)
    if not candidates:
        return result

    try:
        storage.ensure_dir()
    except PersistError as exc:
        logger.error("%s", exc)
        result.errors.append(str(exc))
        result.errors.extend(f"No guardado: {c.filename}" for c in candidates)
        return result

    written = set()
    for cand in candidates:
        try:
            fp = storage.save_bytes(cand.filename, cand.content)
        except PersistError as exc:
            logger.error("%s", exc)
            result.errors.append(str(exc))
            continue
        if fp in written:
            logger.warning("%s ya se guardó en esta ejecución; se sobrescribe con el último adjunto", fp.name)
        written.add(fp)
        logger.info("Guardado %s (%d bytes)", fp, len(cand.content))
        result.paths.append(fp)
    return result
