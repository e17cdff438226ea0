from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CallerType(str, Enum):
    """Who is on the line relative to the patient."""

    SELF = "H1"  # the patient is calling
    PRESENT = "H2"  # calling for someone who is with them
    REMOTE = "H3"  # calling for someone who is not with them


class Priority(str, Enum):
    CRITICAL = "K"
    URGENT = "N"
    LESS_URGENT = "M"
    DEFERRABLE = "O"


class Region(str, Enum):
    BRATISLAVA = "Bratislavský"
    TRNAVA = "Trnavský"
    TRENCIN = "Trenčiansky"
    NITRA = "Nitriansky"
    ZILINA = "Žilinský"
    BANSKA_BYSTRICA = "Banskobystrický"
    PRESOV = "Prešovský"
    KOSICE = "Košický"


class Diagnosis(str, Enum):
    HEART_ATTACK = "Infarkt"
    TRAFFIC_ACCIDENT = "Dopravná nehoda"
    ABDOMINAL_PAIN = "Bolesť brucha"
    DIFFICULT_BREATHING = "Sťažené dýchanie"
    STROKE = "Náhla cievna mozgová príhoda"
    CARDIAC_ARREST = "Náhle zastavenie obehu"


class ExtraUnit(str, Enum):
    FIRE_RESCUE = "HaZZ"
    POLICE = "PZSR"
    MUNICIPAL_POLICE = "MP"
    MOUNTAIN_RESCUE = "HZS"
    AIR_AMBULANCE = "VZZS"
    CHEMICAL_LAB = "KCHL"


def _choice(value: Any, enum: type[Enum]) -> str:
    # Empty string means "not filled in yet" for every single-choice field.
    if value is None or value == "":
        return ""
    if isinstance(value, enum):
        return value.value
    allowed = {member.value for member in enum}
    if value not in allowed:
        raise ValueError(f"{value!r} is not one of {sorted(allowed)}")
    return value


class ReportForm(BaseModel):
    """Incident-intake record filled in by the operator during a call.

    The wire format uses camelCase keys (``callerName``, ``extraUnits``) while
    attributes are snake_case; both spellings are accepted on input.
    Instances are immutable: edits produce a new form via :meth:`with_field`.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    caller_name: str = ""
    caller_age: Union[int, str] = ""
    caller_type: str = ""
    priority: str = ""
    region: str = ""
    city: str = ""
    street: str = ""
    number: Union[int, str] = ""
    diagnosis: str = ""
    operator_notes: str = ""
    extra_units: List[str] = Field(default_factory=list)

    @field_validator("caller_type", mode="before")
    @classmethod
    def _caller_type(cls, value: Any) -> str:
        return _choice(value, CallerType)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> str:
        return _choice(value, Priority)

    @field_validator("region", mode="before")
    @classmethod
    def _region(cls, value: Any) -> str:
        return _choice(value, Region)

    @field_validator("diagnosis", mode="before")
    @classmethod
    def _diagnosis(cls, value: Any) -> str:
        return _choice(value, Diagnosis)

    @field_validator("extra_units", mode="before")
    @classmethod
    def _extra_units(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple, set)):
            raise ValueError("extraUnits must be a list")
        units: List[str] = []
        for unit in value:
            code = _choice(unit, ExtraUnit)
            if code and code not in units:
                units.append(code)
        return units

    @classmethod
    def field_name(cls, name: str) -> str:
        """Resolve ``name`` (attribute or camelCase alias) to the attribute name."""

        if name in cls.model_fields:
            return name
        for attr, info in cls.model_fields.items():
            if info.alias == name:
                return attr
        raise KeyError(f"Unknown report form field: {name}")

    def with_field(self, name: str, value: Any) -> "ReportForm":
        attr = self.field_name(name)
        data = self.model_dump()
        data[attr] = value
        return type(self).model_validate(data)

    def toggle_unit(self, unit: Union[ExtraUnit, str]) -> List[str]:
        """Return the unit list with ``unit`` added or removed."""

        code = _choice(unit, ExtraUnit)
        units = list(self.extra_units)
        if code in units:
            units.remove(code)
        else:
            units.append(code)
        return units

    def snapshot(self) -> Dict[str, Any]:
        """Full form in wire format, sent on every save."""

        return self.model_dump(by_alias=True)
