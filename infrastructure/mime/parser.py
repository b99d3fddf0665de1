# infrastructure/mime/parser.py
"""
Parser MIME: bytes RFC822 -> árbol de MimeEntity.

Carga el mensaje con `PyzMessage.factory` (pyzmail, sobre el feed parser compat32 de
la librería estándar) y traduce su resultado a entidades del dominio:
  - cabeceras sin plegar, valores en bruto (los encoded-words se decodifican al leerlos);
    los bytes 8-bit sin codificar se leen como UTF-8 y, si no lo son, como latin-1
  - parámetros RFC 2231 ya colapsados
  - cuerpos de hoja decodificados según Content-Transfer-Encoding
  - los defectos que detecta el parser se guardan en `MimeEntity.defects`
"""
from __future__ import annotations
import logging
import re
from email.message import Message
from email.utils import collapse_rfc2231_value
from typing import BinaryIO, Union

from pyzmail import PyzMessage

from domain.errors import ParseError
from domain.models import ContentDisposition, ContentType, HeaderMap, MimeEntity

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, BinaryIO]

_FOLD = re.compile(r"\r?\n(?=[ \t])")

KNOWN_TRANSFER_ENCODINGS = {
    "7bit", "8bit", "binary",
    "base64", "quoted-printable",
    "x-uuencode", "uuencode", "uue", "x-uue",
}

# Defectos que, en la raíz, significan que no hay un bloque de cabeceras utilizable
_FATAL_ROOT_DEFECTS = {
    "MissingHeaderBodySeparatorDefect",
    "FirstHeaderLineIsContinuationDefect",
    "InvalidHeaderDefect",
}

# Multipart sin delimitador usable: se degrada a hoja vacía
_BROKEN_BOUNDARY_DEFECTS = {
    "NoBoundaryInMultipartDefect",
    "StartBoundaryNotFoundDefect",
}


def parse_message(source: Source) -> MimeEntity:
    """
    Parsea un mensaje completo. Lanza ParseError si el flujo no empieza con un
    bloque de cabeceras bien formado; cualquier otro problema queda registrado
    como defecto en la entidad afectada.
    """
    data = bytes(source) if isinstance(source, (bytes, bytearray, memoryview)) else source.read()
    msg = _load(data)

    defects = _defect_names(msg)
    fatal = sorted(_FATAL_ROOT_DEFECTS.intersection(defects))
    if fatal:
        raise ParseError(f"Bloque de cabeceras mal formado: {', '.join(fatal)}")
    if not msg.keys():
        raise ParseError("El mensaje no contiene cabeceras")

    return _to_entity(msg)


def _load(data: bytes) -> Message:
    try:
        return PyzMessage.factory(data)
    except Exception as exc:
        # el árbol ya está parseado; solo falla el índice de partes de pyzmail
        logger.warning("pyzmail no pudo indexar las partes (%s); se usa el árbol MIME tal cual", exc)
        return PyzMessage.smart_parser(data)


def _unescape(value) -> str:
    """Bytes 8-bit crudos en una cabecera (surrogateescape) -> texto."""
    value = str(value)
    try:
        value.encode("utf-8")
        return value
    except UnicodeEncodeError:
        raw = value.encode("ascii", "surrogateescape")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _defect_names(msg: Message) -> list[str]:
    return [type(d).__name__ for d in getattr(msg, "defects", [])]


def _params(headers: HeaderMap, header: str) -> dict[str, str]:
    text = headers.get(header)
    if text is None:
        return {}
    # get_params sobre el mensaje original convertiría los bytes 8-bit en U+FFFD
    scratch = Message()
    scratch[header] = text
    raw = scratch.get_params(failobj=None, header=header) or []
    out: dict[str, str] = {}
    # el primer elemento es el propio valor (p.ej. "text/plain" o "attachment")
    for key, value in raw[1:]:
        if not key:
            continue
        out[key.lower()] = collapse_rfc2231_value(value).strip() if value else ""
    return out


def _content_type(msg: Message, headers: HeaderMap) -> ContentType:
    return ContentType(
        maintype=msg.get_content_maintype(),
        subtype=msg.get_content_subtype(),
        params=_params(headers, "content-type"),
    )


def _disposition(msg: Message, headers: HeaderMap) -> ContentDisposition:
    token = msg.get_content_disposition()
    if not token:
        return ContentDisposition()
    return ContentDisposition(token=token, params=_params(headers, "content-disposition"))


def _leaf_body(msg: Message, defects: list[str]) -> bytes:
    cte = str(msg.get("Content-Transfer-Encoding", "7bit")).strip().lower()
    if cte not in KNOWN_TRANSFER_ENCODINGS:
        # get_payload(decode=True) devuelve los bytes sin tocar para CTE desconocidos
        logger.warning("Content-Transfer-Encoding desconocido '%s'; se conserva en bruto", cte)
        defects.append(f"UnknownTransferEncoding:{cte}")
    payload = msg.get_payload(decode=True)
    return payload if isinstance(payload, bytes) else b""


def _to_entity(msg: Message) -> MimeEntity:
    headers = HeaderMap([(k, _FOLD.sub("", _unescape(v))) for k, v in msg.raw_items()])
    ctype = _content_type(msg, headers)
    disp = _disposition(msg, headers)
    defects = _defect_names(msg)

    if ctype.mime_type == "message/rfc822" and msg.is_multipart():
        # mensaje reenviado como adjunto: se guarda tal cual (.eml)
        inner = msg.get_payload(0)
        return MimeEntity(headers, ctype, disp, body=inner.as_bytes(), defects=defects)

    if ctype.is_multipart:
        if not msg.is_multipart() or _BROKEN_BOUNDARY_DEFECTS.intersection(defects):
            logger.warning(
                "Multipart %s sin delimitador válido (boundary=%r); se trata como cuerpo vacío",
                ctype.mime_type, ctype.params.get("boundary"),
            )
            return MimeEntity(headers, ctype, disp, body=b"", defects=defects)
        if "CloseBoundaryNotFoundDefect" in defects:
            logger.warning("Multipart %s sin delimitador de cierre; se usan las partes leídas", ctype.mime_type)

        children = [_child_entity(part) for part in msg.get_payload()]
        if not children:
            return MimeEntity(headers, ctype, disp, body=b"", defects=defects)
        return MimeEntity(headers, ctype, disp, children=children, defects=defects)

    return MimeEntity(headers, ctype, disp, body=_leaf_body(msg, defects), defects=defects)


def _child_entity(part: Message) -> MimeEntity:
    # una parte rota no debe arrastrar a sus hermanas
    try:
        return _to_entity(part)
    except Exception as exc:
        logger.warning("No se pudo interpretar una parte MIME: %s", exc)
        return MimeEntity(
            HeaderMap(),
            ContentType("application", "octet-stream"),
            ContentDisposition(),
            body=b"",
            defects=[f"UnparseablePart:{type(exc).__name__}"],
        )
