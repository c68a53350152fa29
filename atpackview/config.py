"""Configuration for AtPack loading"""
import os
from dataclasses import dataclass, field
from typing import Dict


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


@dataclass
class LoaderConfig:
    """Archive loader configuration"""

    # HTTP retrieval
    timeout: float = _env_float("ATPACKVIEW_TIMEOUT", 30.0)
    user_agent: str = os.getenv("ATPACKVIEW_USER_AGENT", "atpackview/0.1")

    # Upper bound on the uncompressed archive size
    max_archive_mb: float = _env_float("ATPACKVIEW_MAX_ARCHIVE_MB", 512.0)

    # Vendor pack indexes
    pack_indexes: Dict[str, str] = field(
        default_factory=lambda: {
            "atmel": "http://packs.download.atmel.com/Atmel.pidx",
            "microchip": "https://packs.download.microchip.com/Microchip.pidx",
        }
    )

    @property
    def max_archive_bytes(self) -> int:
        return int(self.max_archive_mb * 1024 * 1024)


config = LoaderConfig()
