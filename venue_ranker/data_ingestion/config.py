from dataclasses import dataclass
from pathlib import Path

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class IngestionConfig:
    """
    Locations of the raw CSV exports and of the processed JSON records.
    """

    raw_data_dir: Path = _DATA_DIR / "raw"
    processed_data_dir: Path = _DATA_DIR / "processed"
    items_filename: str = "items.csv"
    slots_filename: str = "slots.csv"
    users_filename: str = "users.csv"
    preferences_filename: str = "preferences.csv"
    bookings_filename: str = "bookings.csv"

    def raw_path(self, filename: str) -> Path:
        return self.raw_data_dir / filename

    @property
    def processed_users_path(self) -> Path:
        return self.processed_data_dir / "users.json"

    @property
    def processed_items_path(self) -> Path:
        return self.processed_data_dir / "items.json"


DEFAULT_INGESTION_CONFIG = IngestionConfig()
