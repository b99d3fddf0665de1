"""
Pytest configuration and shared fixtures.
"""
import base64
import os
import sys

import pytest

# Add project root to path for imports
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

ZIP1 = b"PK\x03\x04transactions-1\x00\x01\x02date;amount\n2025-07-08;10.50\n"
ZIP2 = b"PK\x03\x04transactions-2\x00\xff\xfedate;amount\n2025-07-09;-3.20\n"


def b64(data: bytes) -> str:
    return base64.encodebytes(data).decode("ascii").strip()


def report_message(zip1: bytes = ZIP1, zip2: bytes = ZIP2) -> bytes:
    """multipart/mixed con un multipart/related (html + logo) y dos zip adjuntos."""
    return f"""\
From: Bank Reports <reports@bank.example>
To: ops@example.com
Subject: Transactions export
Date: Tue, 08 Jul 2025 06:00:00 +0000
MIME-Version: 1.0
Content-Type: multipart/mixed; boundary="outer-boundary"

This is a multi-part message in MIME format.
--outer-boundary
Content-Type: multipart/related; boundary="inner-boundary"

--inner-boundary
Content-Type: text/html; charset=utf-8
Content-Transfer-Encoding: quoted-printable

<html><body>Adjuntamos el extracto diario.</body></html>
--inner-boundary
Content-Type: image/png
Content-ID: <logo@bank.example>
Content-Transfer-Encoding: base64

iVBORw0KGgo=
--inner-boundary--
--outer-boundary
Content-Type: application/zip; name="transactions1.csv.zip"
Content-Disposition: attachment; filename="transactions1.csv.zip"
Content-Transfer-Encoding: base64

{b64(zip1)}
--outer-boundary
Content-Type: application/zip
Content-Disposition: attachment; filename="transactions2.csv.zip"
Content-Transfer-Encoding: base64

{b64(zip2)}
--outer-boundary--
""".encode("ascii")


def plain_message(subject: str = "Hola", body: str = "Sin adjuntos.") -> bytes:
    return (
        "From: reports@bank.example\n"
        "To: ops@example.com\n"
        f"Subject: {subject}\n"
        "Content-Type: text/plain; charset=utf-8\n"
        "\n"
        f"{body}"
    ).encode("utf-8")


@pytest.fixture
def report_bytes():
    return report_message()


@pytest.fixture
def plain_bytes():
    return plain_message()
