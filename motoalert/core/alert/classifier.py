"""
Alert classification.

This module decides, for one write to a motorcycle's "latest" record, whether
a user-facing alert must be raised. It compares the snapshot before the write
with the snapshot after it and returns at most one `AlertCandidate`.

Precedence (first match wins, top to bottom)
--------------------------------------------
1. A critical DTC that is new, or whose same-code predecessor was not critical.
2. A warning DTC that is new, or whose same-code predecessor was neither
   warning nor critical.
3. Parameters, evaluated even when step 2 produced a candidate:
   a. A parameter that became invalid -> critical; overrides a warning DTC.
   b. A valid parameter that newly left its ``[min, max]`` range -> warning;
      only when nothing else was found.

When there is no "before" snapshot (first-ever write), the same precedence is
applied to the "after" snapshot alone: every condition present counts as new.

Notes
-----
The classifier keeps no memory beyond the before/after pair. A DTC that is
cleared and later reappears, or a parameter flapping between valid and
invalid, raises an alert on every such transition.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from motoalert.core.alert.messages import (
    critical_dtc_alert,
    invalid_parameter_alert,
    out_of_range_alert,
    warning_dtc_alert,
)
from motoalert.domain.models import (
    AlertCandidate,
    DiagnosticTroubleCode,
    DtcSeverity,
    DynamicParameter,
    TelemetrySnapshot,
)


class CollectionOrder(str, Enum):
    """
    Iteration order used to break ties between simultaneously qualifying
    DTCs or parameters.

    Members
    -------
    STORED : str
        Order as received from the database.
    SORTED : str
        DTCs by code, parameters by name.
    """

    STORED = "stored"
    SORTED = "sorted"


_WARNING_OR_WORSE = (DtcSeverity.WARNING, DtcSeverity.CRITICAL)

_EMPTY = TelemetrySnapshot()


def _ordered_dtcs(snapshot: TelemetrySnapshot, order: CollectionOrder) -> List[DiagnosticTroubleCode]:
    if order is CollectionOrder.SORTED:
        return sorted(snapshot.dtcs, key=lambda d: d.code)
    return list(snapshot.dtcs)


def _ordered_params(snapshot: TelemetrySnapshot, order: CollectionOrder) -> List[DynamicParameter]:
    if order is CollectionOrder.SORTED:
        return [snapshot.parameters[k] for k in sorted(snapshot.parameters)]
    return list(snapshot.parameters.values())


def _first_new_critical_dtc(
    dtcs: Iterable[DiagnosticTroubleCode],
    prior: Dict[str, DiagnosticTroubleCode],
) -> Optional[DiagnosticTroubleCode]:
    for dtc in dtcs:
        if dtc.severity is not DtcSeverity.CRITICAL:
            continue
        prev = prior.get(dtc.code)
        if prev is None or prev.severity is not DtcSeverity.CRITICAL:
            return dtc
    return None


def _first_new_warning_dtc(
    dtcs: Iterable[DiagnosticTroubleCode],
    prior: Dict[str, DiagnosticTroubleCode],
) -> Optional[DiagnosticTroubleCode]:
    for dtc in dtcs:
        if dtc.severity is not DtcSeverity.WARNING:
            continue
        prev = prior.get(dtc.code)
        if prev is None or prev.severity not in _WARNING_OR_WORSE:
            return dtc
    return None


def _first_newly_invalid(
    params: Iterable[DynamicParameter],
    prior: Mapping[str, DynamicParameter],
) -> Optional[DynamicParameter]:
    for param in params:
        if param.is_valid:
            continue
        prev = prior.get(param.name)
        if prev is None or prev.is_valid:
            return param
    return None


def _first_newly_out_of_range(
    params: Iterable[DynamicParameter],
    prior: Mapping[str, DynamicParameter],
) -> Optional[DynamicParameter]:
    for param in params:
        if not param.is_valid or not param.is_out_of_range():
            continue
        prev = prior.get(param.name)
        # Already valid-and-out-of-range before: no re-trigger.
        if prev is None or not prev.is_valid or not prev.is_out_of_range():
            return param
    return None


def _classify_transition(
    before: TelemetrySnapshot,
    after: TelemetrySnapshot,
    order: CollectionOrder,
) -> Optional[AlertCandidate]:
    prior_dtcs = before.dtcs_by_code()
    dtcs = _ordered_dtcs(after, order)

    critical = _first_new_critical_dtc(dtcs, prior_dtcs)
    if critical is not None:
        return critical_dtc_alert(critical)

    candidate: Optional[AlertCandidate] = None
    warning = _first_new_warning_dtc(dtcs, prior_dtcs)
    if warning is not None:
        candidate = warning_dtc_alert(warning)

    params = _ordered_params(after, order)

    invalid = _first_newly_invalid(params, before.parameters)
    if invalid is not None:
        return invalid_parameter_alert(invalid)

    if candidate is None:
        out_of_range = _first_newly_out_of_range(params, before.parameters)
        if out_of_range is not None:
            candidate = out_of_range_alert(out_of_range)

    return candidate


def classify_initial(
    after: TelemetrySnapshot,
    order: CollectionOrder = CollectionOrder.STORED,
) -> Optional[AlertCandidate]:
    """
    Classify the first-ever snapshot of a motorcycle.

    Scans ``after`` alone: any critical DTC, then any invalid parameter
    (which outranks a warning DTC), then any warning DTC, then any valid
    out-of-range parameter.
    """
    return _classify_transition(_EMPTY, after, order)


def classify(
    before: Optional[TelemetrySnapshot],
    after: Optional[TelemetrySnapshot],
    order: CollectionOrder = CollectionOrder.STORED,
) -> Optional[AlertCandidate]:
    """
    Classify one snapshot transition.

    Parameters
    ----------
    before
        Snapshot prior to the triggering write, or None on creation.
    after
        Snapshot resulting from the write, or None on deletion.
    order
        Tie-breaking order among simultaneously qualifying entries.

    Returns
    -------
    AlertCandidate or None
        The single highest-priority alert, or None.
    """
    if after is None:
        return None
    if before is None:
        return classify_initial(after, order)
    return _classify_transition(before, after, order)
