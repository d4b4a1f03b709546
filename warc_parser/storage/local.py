from pathlib import Path

from warc_parser.errors import AssetNotFound
from warc_parser.storage.base import AssetStore


class LocalAssetStore(AssetStore):
    name = "local"

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir)

    def load(self, asset_name: str) -> bytes:
        root = self.base_dir.resolve()
        try:
            path = (root / asset_name.lstrip("/")).resolve()
        except ValueError as exc:
            # embedded NUL bytes and similar names the file system cannot hold
            raise AssetNotFound(asset_name) from exc
        if not path.is_relative_to(root) or not path.is_file():
            raise AssetNotFound(asset_name)
        return path.read_bytes()
