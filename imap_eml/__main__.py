"""Entry point for the imap_eml package.

Usage::

    IMAP_HOST=imap.example.com IMAP_USERNAME=me IMAP_PASSWORD=... \\
    DOWNLOAD_MAILBOX=INBOX DOWNLOAD_SUBJECT=invoice python -m imap_eml

Binary mode (the default) writes one ``.eml`` file per message into
``DOWNLOAD_OUTPUT_DIR``; with ``DOWNLOAD_OUTPUT_TO_BINARY=false`` each
message is printed to stdout as a JSON line.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

from .config import DownloadConfig, ImapConfig
from .context import ExecutionContext
from .errors import ImapEmlError
from .logging import setup_logging
from .models import OutputRecord
from .operation import DownloadEmlOperation


def _write_records(records: list[OutputRecord], output_dir: Path) -> None:
    for record in records:
        if record.binary_fields:
            output_dir.mkdir(parents=True, exist_ok=True)
            for binary in record.binary_fields.values():
                target = output_dir / binary.file_name.replace("/", "_")
                target.write_bytes(binary.content())
                print(target)
        else:
            print(json.dumps(record.to_item(), ensure_ascii=False))


def main() -> None:
    download = DownloadConfig()
    setup_logging(json=download.log_json, level=download.log_level)

    config = ImapConfig()
    context = ExecutionContext(download.to_parameters())

    try:
        records = asyncio.run(DownloadEmlOperation().execute(context, config))
    except ImapEmlError as exc:
        print(f"imap_eml: {exc}", file=sys.stderr)
        sys.exit(1)

    _write_records(records, Path(download.output_dir))


if __name__ == "__main__":
    main()
