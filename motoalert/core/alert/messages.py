"""
Alert message rendering.

Bodies for DTC and parameter alerts start with "DTC:" / "Parameter" so the
push payload builder can tell they are self-describing.
"""

from __future__ import annotations

from motoalert.domain.models import (
    AlertCandidate,
    AlertKind,
    AlertSeverity,
    DiagnosticTroubleCode,
    DynamicParameter,
)


def _num(x: float) -> str:
    return f"{x:g}"


def _with_unit(x: float, unit: str) -> str:
    return f"{_num(x)} {unit}".rstrip()


def _dtc_body(dtc: DiagnosticTroubleCode) -> str:
    if dtc.description:
        return f"DTC: {dtc.code} - {dtc.description}"
    return f"DTC: {dtc.code}"


def critical_dtc_alert(dtc: DiagnosticTroubleCode) -> AlertCandidate:
    return AlertCandidate(
        kind=AlertKind.CRITICAL_DTC,
        severity=AlertSeverity.CRITICAL,
        title="Critical DTC Alert",
        body=_dtc_body(dtc),
        source_code=dtc.code,
    )


def warning_dtc_alert(dtc: DiagnosticTroubleCode) -> AlertCandidate:
    return AlertCandidate(
        kind=AlertKind.WARNING_DTC,
        severity=AlertSeverity.WARNING,
        title="DTC Warning",
        body=_dtc_body(dtc),
        source_code=dtc.code,
    )


def invalid_parameter_alert(param: DynamicParameter) -> AlertCandidate:
    return AlertCandidate(
        kind=AlertKind.PARAMETER,
        severity=AlertSeverity.CRITICAL,
        title="Critical Parameter Alert",
        body=f"Parameter {param.name} reports an invalid reading (sensor fault)",
        source_code=param.name,
    )


def out_of_range_alert(param: DynamicParameter) -> AlertCandidate:
    normal = f"{_num(param.min)}-{_with_unit(param.max, param.unit)}"
    return AlertCandidate(
        kind=AlertKind.PARAMETER,
        severity=AlertSeverity.WARNING,
        title="Parameter Warning",
        body=(
            f"Parameter {param.name} out of range: "
            f"{_with_unit(param.value, param.unit)} (normal {normal})"
        ),
        source_code=param.name,
    )
