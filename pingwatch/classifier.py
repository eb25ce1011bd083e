"""Maps raw probe statuses onto failure kinds and operator-facing messages."""
from __future__ import annotations

from .models import FailureKind, ProbeError, ProbeFailure

STATUS_TABLE: dict[str, tuple[FailureKind, str]] = {
    "TimedOut":                       (FailureKind.TIMED_OUT, "Request timed out"),
    "TimeExceeded":                   (FailureKind.TIMED_OUT, "Time exceeded"),
    "TtlExpired":                     (FailureKind.TIMED_OUT, "TTL expired in transit"),
    "TtlReassemblyTimeExceeded":      (FailureKind.TIMED_OUT, "TTL reassembly time exceeded"),
    "DestinationHostUnreachable":     (FailureKind.HOST_UNREACHABLE, "Destination host unreachable"),
    "DestinationNetworkUnreachable":  (FailureKind.HOST_UNREACHABLE, "Destination network unreachable"),
    "DestinationProtocolUnreachable": (FailureKind.HOST_UNREACHABLE, "Destination protocol unreachable"),
    "DestinationPortUnreachable":     (FailureKind.HOST_UNREACHABLE, "Destination port unreachable"),
    "DestinationProhibited":          (FailureKind.HOST_UNREACHABLE, "Destination prohibited"),
    "DestinationUnreachable":         (FailureKind.HOST_UNREACHABLE, "Destination unreachable"),
    "BadDestination":                 (FailureKind.NETWORK_ERROR, "Bad destination"),
    "BadRoute":                       (FailureKind.NETWORK_ERROR, "Bad network route"),
    "BadOption":                      (FailureKind.NETWORK_ERROR, "Bad option"),
    "BadHeader":                      (FailureKind.NETWORK_ERROR, "Bad header"),
    "HardwareError":                  (FailureKind.NETWORK_ERROR, "Hardware error"),
    "NoResources":                    (FailureKind.NETWORK_ERROR, "Insufficient network resources"),
    "PacketTooBig":                   (FailureKind.NETWORK_ERROR, "Packet too big"),
    "ParameterProblem":               (FailureKind.NETWORK_ERROR, "Parameter problem"),
    "SourceQuench":                   (FailureKind.NETWORK_ERROR, "Source quench"),
    "UnrecognizedNextHeader":         (FailureKind.NETWORK_ERROR, "Unrecognized next header"),
    "IcmpError":                      (FailureKind.NETWORK_ERROR, "ICMP error"),
    "DestinationScopeMismatch":       (FailureKind.NETWORK_ERROR, "Destination scope mismatch"),
}

EXCEPTION_STATUS = "Exception"


def classify(status: str | None = None, exception: str | None = None) -> tuple[FailureKind, str]:
    """Return ``(kind, message)`` for a raw probe status or transport exception.

    A known status wins over an exception. Unknown statuses become
    ``Unknown`` with the status echoed back; an exception with no status is a
    generic network error; neither at all is indeterminate.
    """
    if status:
        entry = STATUS_TABLE.get(status)
        if entry is not None:
            return entry
        return FailureKind.UNKNOWN, f"Unlisted error: {status}"
    if exception is not None:
        return FailureKind.NETWORK_ERROR, "Network error (Exception)"
    return FailureKind.UNKNOWN, "Indeterminate error"


def classify_error(error: ProbeError) -> ProbeFailure:
    kind, message = classify(error.status, error.exception)
    if error.status:
        raw = error.status
    elif error.exception is not None:
        raw = EXCEPTION_STATUS
    else:
        raw = ""
    return ProbeFailure(kind=kind, raw_status=raw, message=message)
