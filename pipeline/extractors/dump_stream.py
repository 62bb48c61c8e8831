"""
Streaming extraction of COPY sections from a pg_dump text export.

The COPR database dump is a plain-text pg_dump, usually gzip-compressed
and several gigabytes once inflated. Each table's rows appear between a
``COPY <table> (...) FROM stdin;`` line and a line holding only ``\\.``.

Only rows of the requested sections are kept in memory; the file itself
is decompressed on the fly and read line by line.
"""

from typing import Dict, Iterable, List
import gzip
import logging

logger = logging.getLogger(__name__)

SECTION_START = "COPY "
SECTION_END = "\\."


def _collect_sections(lines: Iterable[str], table_names: Iterable[str]) -> Dict[str, List[str]]:
    """Fold dump lines into {table_name: [rows]} for the requested tables"""
    result: Dict[str, List[str]] = {name: [] for name in table_names}
    current = None
    in_section = False

    for raw in lines:
        line = raw.rstrip("\r\n")

        if in_section:
            if line == SECTION_END:
                current = None
                in_section = False
            elif current is not None:
                result[current].append(line)
            continue

        if line.startswith(SECTION_START):
            parts = line.split(" ")
            table_name = parts[1] if len(parts) > 1 else ""
            in_section = True
            current = table_name if table_name in result else None

    return result


def extract_copy_sections(content: str, table_names: Iterable[str]) -> Dict[str, List[str]]:
    """
    Extract COPY sections from a dump held in memory.

    Args:
        content: Full dump text
        table_names: Sections to keep (e.g. "public.copr_score")

    Returns:
        Mapping of each requested table to its raw rows; tables absent
        from the dump map to an empty list
    """
    return _collect_sections(content.split("\n"), table_names)


def stream_extract_copy_sections(file_path: str, table_names: Iterable[str]) -> Dict[str, List[str]]:
    """
    Extract COPY sections from a dump file without loading it whole.

    Files ending in .gz are decompressed while reading.
    """
    opener = gzip.open if str(file_path).endswith(".gz") else open

    with opener(file_path, "rt", encoding="utf-8", errors="replace", newline="") as handle:
        result = _collect_sections(handle, table_names)

    for name, rows in result.items():
        logger.info(f"Extracted {len(rows)} rows from {name}")

    return result
