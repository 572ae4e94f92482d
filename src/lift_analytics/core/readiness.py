"""
Readiness scoring: fuse wearable recovery signals into rho ∈ [0, 1].

Missing signals degrade to neutral values and add explanatory flags;
scoring never raises on absent data.
"""

from .config import (
    GOOD_SIGNAL_THRESHOLD,
    HIGH_STRAIN_PENALTY,
    HIGH_STRAIN_THRESHOLD,
    LOW_SIGNAL_THRESHOLD,
    MANUAL_LOW_THRESHOLD,
    NEUTRAL_RATIO,
    NEUTRAL_SIGNAL,
    RATIO_MAX,
    RATIO_MIN,
    W_HRV,
    W_MANUAL_ENERGY,
    W_MANUAL_HRV,
    W_MANUAL_RHR,
    W_MANUAL_SLEEP,
    W_RECOVERY,
    W_RHR,
    W_SLEEP,
)
from .metrics import clip
from .models import BiometricSnapshot, ManualWellness, ReadinessResult


def _percent_signal(value: float | None) -> float:
    """Normalize a 0-100 percentage; neutral when missing."""
    if value is None:
        return NEUTRAL_SIGNAL
    return clip(value / 100, 0.0, 1.0)


def hrv_ratio(snapshot: BiometricSnapshot) -> float | None:
    """
    HRV ratio h = clip(hrv_now / hrv_baseline, 0.8, 1.2).

    Returns:
        Ratio, or None when either reading is missing or non-positive
    """
    if not snapshot.hrv_now_ms or not snapshot.hrv_baseline_ms:
        return None
    return clip(snapshot.hrv_now_ms / snapshot.hrv_baseline_ms, RATIO_MIN, RATIO_MAX)


def rhr_ratio(snapshot: BiometricSnapshot) -> float | None:
    """
    Resting heart rate ratio r = clip(rhr_baseline / rhr_now, 0.8, 1.2).

    Inverted because a lower resting heart rate is better.
    """
    if not snapshot.rhr_now_bpm or not snapshot.rhr_baseline_bpm:
        return None
    return clip(snapshot.rhr_baseline_bpm / snapshot.rhr_now_bpm, RATIO_MIN, RATIO_MAX)


def _manual_flags(wellness: ManualWellness) -> list[str]:
    flags = ["manual_wellness_input"]
    if wellness.energy_level <= MANUAL_LOW_THRESHOLD:
        flags.append("low_energy")
    if wellness.sleep_quality <= MANUAL_LOW_THRESHOLD:
        flags.append("poor_sleep")
    notes = (wellness.notes or "").lower()
    if "stress" in notes:
        flags.append("stress_noted")
    if "sick" in notes:
        flags.append("illness_noted")
    return flags


def calculate_readiness(
    snapshot: BiometricSnapshot | None = None,
    manual_wellness: ManualWellness | None = None,
) -> ReadinessResult:
    """
    Calculate readiness rho from biometrics and optional self-report.

    Wearable path:
        rho = clip(0.4*recovery + 0.3*sleep + 0.15*h + 0.15*r, 0, 1)
    Manual wellness path (self-report dominates):
        rho = clip(0.5*energy + 0.4*sleep_quality + 0.05*h + 0.05*r, 0, 1)

    Yesterday's strain above 14 costs 0.05 (floor 0) on either path.

    Args:
        snapshot: Wearable metrics (any field may be None)
        manual_wellness: Self-reported energy / sleep check-in

    Returns:
        ReadinessResult with rho and flags
    """
    snapshot = snapshot or BiometricSnapshot()
    flags: list[str] = []

    h = hrv_ratio(snapshot)
    if h is None:
        flags.append("missing_hrv")
        h = NEUTRAL_RATIO

    r = rhr_ratio(snapshot)
    if r is None:
        flags.append("missing_rhr")
        r = NEUTRAL_RATIO

    recovery = _percent_signal(snapshot.recovery_score)
    sleep = _percent_signal(snapshot.sleep_performance)

    if manual_wellness is not None:
        energy = manual_wellness.energy_level / 10
        sleep_quality = manual_wellness.sleep_quality / 10
        rho = clip(
            W_MANUAL_ENERGY * energy
            + W_MANUAL_SLEEP * sleep_quality
            + W_MANUAL_HRV * h
            + W_MANUAL_RHR * r,
            0.0,
            1.0,
        )
    else:
        rho = clip(
            W_RECOVERY * recovery + W_SLEEP * sleep + W_HRV * h + W_RHR * r,
            0.0,
            1.0,
        )

    if snapshot.yesterday_strain is not None and snapshot.yesterday_strain > HIGH_STRAIN_THRESHOLD:
        rho = max(0.0, rho - HIGH_STRAIN_PENALTY)
        flags.append("high_strain_yesterday")

    if manual_wellness is not None:
        flags.extend(_manual_flags(manual_wellness))
    else:
        if recovery < LOW_SIGNAL_THRESHOLD:
            flags.append("low_recovery")
        if sleep < LOW_SIGNAL_THRESHOLD:
            flags.append("poor_sleep")
        if recovery >= GOOD_SIGNAL_THRESHOLD:
            flags.append("good_recovery")
        if sleep >= GOOD_SIGNAL_THRESHOLD:
            flags.append("good_sleep")

    return ReadinessResult(rho=rho, flags=flags)
