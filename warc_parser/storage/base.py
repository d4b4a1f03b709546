from __future__ import annotations

from abc import ABC, abstractmethod


class AssetStore(ABC):
    name: str

    @abstractmethod
    def load(self, asset_name: str) -> bytes:
        """Return the stored object, raising AssetNotFound or OSError."""
        raise NotImplementedError
