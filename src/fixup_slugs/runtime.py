"""Runtime wiring helper for CLI and API applications."""

from dataclasses import dataclass, field
from pathlib import Path

from .adapters.idgen import HexSuffix
from .adapters.memory_store import InMemoryStore
from .adapters.sqlite_store import SQLiteStore
from .config import MEMORY_DB, SlugsConfig, load_config
from .core.manager import SlugManager
from .core.model import SluggedRecord
from .core.ports import RecordStore


@dataclass
class Runtime:
    """Container for all wired components."""
    store: RecordStore
    suffixes: HexSuffix
    config: SlugsConfig
    kind: str
    _managers: dict[str, SlugManager] = field(default_factory=dict, repr=False)

    def manager(self, kind: str | None = None) -> SlugManager:
        """SlugManager for `kind` (default: the configured kind), built once."""
        kind = kind or self.kind
        if kind not in self._managers:
            self._managers[kind] = SlugManager(
                self.store,
                kind=kind,
                settings=self.config.slugs.settings(),
                suffixes=self.suffixes,
            )
        return self._managers[kind]

    async def records_by_kind(self) -> dict[str, list[SluggedRecord]]:
        return {
            kind: await self.store.list_records(kind)
            for kind in await self.store.list_kinds()
        }


def build_runtime(
    db_path: Path | str | None = None,
    config_path: Path | None = None,
    kind: str | None = None,
) -> Runtime:
    """Build and wire all components."""
    config = load_config(config_path=config_path)

    # Use config values if CLI args not provided
    if db_path is None:
        db_path = config.store.db

    store: RecordStore
    if str(db_path) == MEMORY_DB:
        store = InMemoryStore()
    else:
        store = SQLiteStore(db_path=Path(db_path))

    return Runtime(
        store=store,
        suffixes=HexSuffix(nbytes=config.slugs.suffix_bytes),
        config=config,
        kind=kind or config.slugs.kind,
    )
