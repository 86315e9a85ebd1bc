"""YAML import/export of slugged records, grouped by kind."""

import io
from pathlib import Path
from typing import Any

import yaml

from ..core.model import SluggedRecord

_FIELDS = ("id", "display_name", "slug", "slug_is_manual")


class YamlRecordCodec:
    """
    Round-trip records as

        service:
          - id: 1
            display_name: ძრავის დიაგნოსტიკა
            slug: dzravis-diagnostika
            slug_is_manual: false

    `id` and `slug` are optional on import; the importer assigns them.
    """

    def encode(self, records_by_kind: dict[str, list[SluggedRecord]]) -> str:
        doc: dict[str, list[dict[str, Any]]] = {}
        for kind in sorted(records_by_kind):
            doc[kind] = [
                {name: getattr(record, name) for name in _FIELDS}
                for record in records_by_kind[kind]
            ]
        buf = io.StringIO()
        yaml.safe_dump(doc, buf, sort_keys=False, allow_unicode=True)
        return buf.getvalue()

    def decode(self, text: str) -> dict[str, list[SluggedRecord]]:
        doc = yaml.safe_load(io.StringIO(text)) or {}
        if not isinstance(doc, dict):
            raise ValueError("Record file must map kinds to lists of records")

        out: dict[str, list[SluggedRecord]] = {}
        for kind, items in doc.items():
            if not isinstance(items, list):
                raise ValueError(f"Records for kind {kind!r} must be a list")
            out[str(kind)] = [self._record(str(kind), item, pos) for pos, item in enumerate(items)]
        return out

    @staticmethod
    def _record(kind: str, item: Any, pos: int) -> SluggedRecord:
        if isinstance(item, str):
            item = {"display_name": item}
        if not isinstance(item, dict) or not item.get("display_name"):
            raise ValueError(f"{kind}[{pos}]: display_name is required")

        raw_id = item.get("id")
        if raw_id is not None and (isinstance(raw_id, bool) or not isinstance(raw_id, int)):
            raise ValueError(f"{kind}[{pos}]: id must be an integer")

        return SluggedRecord(
            id=raw_id if raw_id is not None else 0,  # 0: let the store assign
            kind=kind,
            display_name=str(item["display_name"]),
            slug=str(item.get("slug") or ""),
            slug_is_manual=bool(item.get("slug_is_manual", False)),
        )


def load_records(path: Path) -> dict[str, list[SluggedRecord]]:
    return YamlRecordCodec().decode(path.read_text(encoding="utf-8"))


def dump_records(path: Path, records_by_kind: dict[str, list[SluggedRecord]]) -> None:
    path.write_text(YamlRecordCodec().encode(records_by_kind), encoding="utf-8")
