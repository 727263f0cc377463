"""
Domain models and enums.

This module defines the core domain-level types used across the engine:
- Diagnostic trouble codes (DTCs) and dynamic parameters reported by the device
- The "latest" telemetry snapshot of one motorcycle
- Alert candidates produced by the classifier
- In-app notifications persisted for the user

Snapshots arrive as loosely shaped JSON from the realtime database. The
``*_from_dict`` helpers turn them into immutable dataclasses with defined
defaults so the classifier never has to probe for missing fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class DtcSeverity(str, Enum):
    """
    Severity of a diagnostic trouble code as reported by the device.

    Members
    -------
    WARNING : str
        Abnormal condition requiring attention.
    ERROR : str
        Fault recorded by the device; never raises a user alert on its own.
    CRITICAL : str
        Severe condition requiring immediate intervention.
    """

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AlertKind(str, Enum):
    """Which condition produced an alert candidate."""

    CRITICAL_DTC = "criticalDtc"
    WARNING_DTC = "warningDtc"
    PARAMETER = "parameter"


class AlertSeverity(str, Enum):
    """Severity of a user-facing alert."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class DiagnosticTroubleCode:
    """
    One DTC entry of a snapshot.

    Parameters
    ----------
    code
        Short identifier (e.g., "P0217"), unique within one snapshot.
    description
        Human-readable text.
    severity
        Device-reported severity.
    timestamp
        Epoch milliseconds when the device recorded the code.
    """

    code: str
    description: str = ""
    severity: DtcSeverity = DtcSeverity.ERROR
    timestamp: int = 0


@dataclass(frozen=True)
class DynamicParameter:
    """
    One dynamic parameter reading with its declared operating range.

    ``is_valid`` False means a sensor fault or a firmware-flagged severe
    condition, independent of the range.
    """

    name: str
    value: float
    unit: str = ""
    min: float = float("-inf")
    max: float = float("inf")
    is_valid: bool = True
    last_update: int = 0

    def is_out_of_range(self) -> bool:
        return self.value < self.min or self.value > self.max

    def is_valid_in_range(self) -> bool:
        return self.is_valid and not self.is_out_of_range()


@dataclass(frozen=True)
class MotorcycleProfile:
    """Denormalized display info for a motorcycle. All fields optional."""

    make: Optional[str] = None
    model: Optional[str] = None
    vin: Optional[str] = None
    name: Optional[str] = None
    year: Optional[str] = None


@dataclass(frozen=True)
class TelemetrySnapshot:
    """
    The "latest" telemetry record of one motorcycle.

    Parameters
    ----------
    dtcs
        DTCs in the order they were received.
    parameters
        Parameter name -> reading.
    profile
        Optional denormalized profile.
    data_valid, protocol, system_status, timestamp
        Auxiliary device-reported context; not used for classification.
    """

    dtcs: Tuple[DiagnosticTroubleCode, ...] = ()
    parameters: Mapping[str, DynamicParameter] = field(default_factory=dict)
    profile: Optional[MotorcycleProfile] = None
    data_valid: Optional[bool] = None
    protocol: Optional[str] = None
    system_status: Optional[str] = None
    timestamp: Optional[int] = None

    def dtcs_by_code(self) -> Dict[str, DiagnosticTroubleCode]:
        """Index DTCs by code; the first occurrence of a code wins."""
        out: Dict[str, DiagnosticTroubleCode] = {}
        for dtc in self.dtcs:
            out.setdefault(dtc.code, dtc)
        return out


@dataclass(frozen=True)
class AlertCandidate:
    """
    The single alert (if any) raised by one snapshot transition.

    Parameters
    ----------
    kind
        Condition category.
    severity
        Alert severity.
    title, body
        Rendered message strings.
    source_code
        DTC code or parameter name that triggered the alert.
    """

    kind: AlertKind
    severity: AlertSeverity
    title: str
    body: str
    source_code: str


@dataclass(frozen=True)
class AppNotification:
    """
    In-app notification row, created once per dispatched alert.

    ``id`` is the key generated by the notification store and ``timestamp``
    the server-assigned creation time (None when it could not be read back).
    """

    id: str
    motorcycle_id: str
    motorcycle_name: str
    title: str
    body: str
    type: AlertSeverity
    code: str
    severity: AlertSeverity
    link: str
    timestamp: Optional[int] = None
    read: bool = False

    def to_record(self) -> Dict[str, Any]:
        """Database record shape (camelCase, id excluded: it is the key)."""
        return {
            "motorcycleId": self.motorcycle_id,
            "motorcycleName": self.motorcycle_name,
            "title": self.title,
            "body": self.body,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "read": self.read,
            "code": self.code,
            "severity": self.severity.value,
            "link": self.link,
        }


# ---- parsing helpers -------------------------------------------------------


def _as_float(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _as_int(raw: Any, default: int = 0) -> int:
    val = _as_float(raw)
    return int(val) if val is not None else default


def _as_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def _parse_dtc_severity(raw: Any) -> DtcSeverity:
    try:
        return DtcSeverity(str(raw).strip().lower())
    except ValueError:
        return DtcSeverity.ERROR


def dtc_from_dict(raw: Any) -> Optional[DiagnosticTroubleCode]:
    """Parse one DTC; entries without a code are dropped (None)."""
    if not isinstance(raw, Mapping):
        return None
    code = _as_str(raw.get("code"))
    if code is None:
        return None
    return DiagnosticTroubleCode(
        code=code,
        description=str(raw.get("description") or ""),
        severity=_parse_dtc_severity(raw.get("severity")),
        timestamp=_as_int(raw.get("timestamp")),
    )


def _iter_dtc_entries(raw: Any) -> List[Any]:
    # Sparse arrays come back from the database as index-keyed objects.
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if isinstance(raw, Mapping):
        keyed = []
        for k, v in raw.items():
            try:
                keyed.append((int(k), v))
            except (TypeError, ValueError):
                continue
        return [v for _, v in sorted(keyed, key=lambda kv: kv[0])]
    return []


def parameter_from_dict(name: str, raw: Any) -> Optional[DynamicParameter]:
    """
    Parse one dynamic parameter.

    A reading whose value cannot be read as a number is kept but marked
    invalid, as the device would flag a faulty sensor.
    """
    if not isinstance(raw, Mapping):
        return None
    value = _as_float(raw.get("value"))
    lo = _as_float(raw.get("min"))
    hi = _as_float(raw.get("max"))
    is_valid = raw.get("isValid", True) is not False
    if value is None:
        value = 0.0
        is_valid = False
    return DynamicParameter(
        name=name,
        value=value,
        unit=str(raw.get("unit") or ""),
        min=lo if lo is not None else float("-inf"),
        max=hi if hi is not None else float("inf"),
        is_valid=is_valid,
        last_update=_as_int(raw.get("lastUpdate")),
    )


def profile_from_dict(raw: Any) -> Optional[MotorcycleProfile]:
    if not isinstance(raw, Mapping):
        return None
    return MotorcycleProfile(
        make=_as_str(raw.get("make")),
        model=_as_str(raw.get("model")),
        vin=_as_str(raw.get("vin")),
        name=_as_str(raw.get("name")),
        year=_as_str(raw.get("year")),
    )


def snapshot_from_dict(raw: Any) -> Optional[TelemetrySnapshot]:
    """
    Build a snapshot from the raw "latest" record.

    Returns None when the record is absent (deletion). Any malformed or
    missing collection is read as empty; this never raises.
    """
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        return TelemetrySnapshot()

    dtcs = []
    for entry in _iter_dtc_entries(raw.get("dtcs")):
        dtc = dtc_from_dict(entry)
        if dtc is not None:
            dtcs.append(dtc)

    parameters: Dict[str, DynamicParameter] = {}
    params_raw = raw.get("parameters")
    if isinstance(params_raw, Mapping):
        for name, p_raw in params_raw.items():
            param = parameter_from_dict(str(name), p_raw)
            if param is not None:
                parameters[param.name] = param

    data_valid = raw.get("dataValid")
    return TelemetrySnapshot(
        dtcs=tuple(dtcs),
        parameters=parameters,
        profile=profile_from_dict(raw.get("profile")),
        data_valid=data_valid if isinstance(data_valid, bool) else None,
        protocol=_as_str(raw.get("protocol")),
        system_status=_as_str(raw.get("systemStatus")),
        timestamp=_as_int(raw.get("timestamp")) if raw.get("timestamp") is not None else None,
    )
