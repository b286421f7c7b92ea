import csv
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from modsquad.core.config import get_settings
from modsquad.services.errors import NotFound


@dataclass(frozen=True)
class CarRecord:
    make: str
    model: str
    year: str


class CarDataService:
    """Year -> make -> model lookups over ``<data_dir>/<year>.csv`` files.

    Each year's rows are read once and kept for the life of the process.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self._cache: dict[str, list[CarRecord]] = {}

    def load_year(self, year: str) -> list[CarRecord]:
        if year in self._cache:
            return self._cache[year]

        path = self.data_dir / f"{year}.csv"
        if not year.isdigit() or not path.is_file():
            raise NotFound(f"No data available for year {year}")
        with path.open(newline="", encoding="utf-8") as handle:
            records = [
                CarRecord(make=row["make"], model=row["model"], year=year)
                for row in csv.DictReader(handle)
                if row.get("make") and row.get("model")
            ]
        self._cache[year] = records
        return records

    def get_makes(self, year: str) -> list[str]:
        return sorted({record.make for record in self.load_year(year)})

    def get_models(self, year: str, make: str) -> list[str]:
        wanted = make.lower()
        return sorted({record.model for record in self.load_year(year) if record.make.lower() == wanted})

    def clear_cache(self) -> None:
        self._cache.clear()


@lru_cache(maxsize=1)
def get_car_data_service() -> CarDataService:
    return CarDataService(get_settings().car_data_dir)
