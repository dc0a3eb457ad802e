"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.clock import DEFAULT_UTC_OFFSET, SalonClock, format_clock, parse_clock, parse_utc_offset
from .domain.models import OperatingConfig, ShiftWindow, normalize_days_off
from .domain.slot_generator import SLOT_INTERVAL_MINUTES

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class WindowSeed(BaseModel):
    """Opening and closing time of one shift ("HH:mm")."""
    opens: str
    closes: str

    @field_validator("opens", "closes")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Validate and zero-pad an HH:mm string."""
        return format_clock(parse_clock(value))

    @model_validator(mode="after")
    def validate_order(self) -> "WindowSeed":
        """Ensure the window opens before it closes."""
        if parse_clock(self.opens) >= parse_clock(self.closes):
            raise ValueError(f"Window must open before it closes ({self.opens} - {self.closes})")
        return self

    def to_window(self) -> ShiftWindow:
        return ShiftWindow(opens=self.opens, closes=self.closes)


class OperatingHoursSeed(BaseModel):
    """Operating hours written to the store by ``salonslots init``."""
    morning: WindowSeed = Field(default_factory=lambda: WindowSeed(opens="09:00", closes="14:00"))
    evening: WindowSeed = Field(default_factory=lambda: WindowSeed(opens="16:00", closes="22:00"))
    days_off: List[str] = Field(default_factory=list)

    @field_validator("days_off")
    @classmethod
    def validate_days_off(cls, value: List[str]) -> List[str]:
        """Ensure weekday names are valid and deduplicated."""
        return list(normalize_days_off(value))

    @model_validator(mode="after")
    def validate_windows_disjoint(self) -> "OperatingHoursSeed":
        """The morning shift must end before the evening shift starts."""
        if parse_clock(self.morning.closes) > parse_clock(self.evening.opens):
            raise ValueError("Morning window must close before the evening window opens")
        return self

    def to_operating_config(self) -> OperatingConfig:
        return OperatingConfig(
            morning_window=self.morning.to_window(),
            evening_window=self.evening.to_window(),
            days_off=tuple(self.days_off),
        )


class ServiceSeed(BaseModel):
    """Service written to the catalogue by ``salonslots init``."""
    name: str
    duration_minutes: int
    price: float = 0

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure service duration is positive."""
        if value <= 0:
            raise ValueError("duration_minutes must be greater than zero")
        return value

    @field_validator("price")
    @classmethod
    def validate_price(cls, value: float) -> float:
        if value < 0:
            raise ValueError("price must not be negative")
        return value


def _default_services() -> List[ServiceSeed]:
    return [
        ServiceSeed(name="Haircut", duration_minutes=25, price=300),
        ServiceSeed(name="Haircut + Beard", duration_minutes=35, price=500),
        ServiceSeed(name="Beard Trimming", duration_minutes=20, price=150),
        ServiceSeed(name="Facial + Massage", duration_minutes=20, price=400),
    ]


class SeedConfig(BaseModel):
    """Initial data for an empty store."""
    operating_hours: OperatingHoursSeed = Field(default_factory=OperatingHoursSeed)
    services: List[ServiceSeed] = Field(default_factory=_default_services)

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceSeed]) -> List[ServiceSeed]:
        """Ensure service names are unique."""
        seen: set[str] = set()
        for service in value:
            key = service.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate service name detected: {service.name}")
            seen.add(key)
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    utc_offset: str = DEFAULT_UTC_OFFSET
    slot_interval_minutes: int = SLOT_INTERVAL_MINUTES
    data_file: Path = Path("salonslots_data.json")
    log_level: str = "WARNING"
    seed: SeedConfig = Field(default_factory=SeedConfig)

    @field_validator("utc_offset")
    @classmethod
    def validate_utc_offset(cls, value: str) -> str:
        """Validate the fixed salon offset (+HH:MM)."""
        parse_utc_offset(value)
        return value

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Slots must tile an hour evenly."""
        if value <= 0 or 60 % value != 0:
            raise ValueError(f"slot_interval_minutes must divide 60, got {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    def build_clock(self) -> SalonClock:
        """The one clock shared by slot generation and booking validation."""
        return SalonClock(utc_offset=self.utc_offset)

    def resolve_data_file(self, config_path: Path | None = None) -> Path:
        """Relative data files live next to the config file."""
        if self.data_file.is_absolute() or config_path is None:
            return self.data_file
        return config_path.parent / self.data_file

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
