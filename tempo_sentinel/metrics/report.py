"""
report.py — Export the dashboard state as a JSON peg stability report

The report only repackages values already present in the DashboardState;
nothing is recomputed here. Keys are emitted in camelCase for dashboard
consumers.
"""

from datetime import datetime, timezone

from tempo_sentinel.metrics.models import DashboardState

REPORT_TITLE = "Tempo Sentinel - Peg Stability Report"


def generate_report(
    dashboard: DashboardState,
    pair_label: str,
    generated_at: datetime | None = None,
) -> dict:
    generated_at = generated_at or datetime.now(timezone.utc)

    psi = dashboard.psi.to_dict()
    concentration = dashboard.concentration.to_dict()
    spread = dashboard.spread.to_dict()
    peg_deviation = dashboard.peg_deviation.to_dict()
    forecast = dashboard.forecast.to_dict()

    return camelize({
        "report": REPORT_TITLE,
        "generated_at": generated_at.isoformat(),
        "pair": pair_label,
        "summary": {
            "peg_stress_index": psi["value"],
            "peg_stress_level": psi["level"],
            "stability_forecast": forecast["probability"],
            "spread_percent": spread["percentage"],
            "peg_deviation": peg_deviation,
            "concentration_risk": concentration["level"],
        },
        "metrics": {
            "psi": psi,
            "concentration": concentration,
            "liquidity_depth": dashboard.liquidity_depth.to_dict(),
            "spread": spread,
            "flip_orders": dashboard.flip_metrics.to_dict(),
            "forecast": forecast,
        },
        "detections": {
            "whale_walls": [w.to_dict() for w in dashboard.whale_walls],
            "liquidity_cliffs": [c.to_dict() for c in dashboard.cliffs],
        },
        "alerts": [a.to_dict() for a in dashboard.alerts],
    })


def camelize(obj):
    if isinstance(obj, dict):
        return {_camel_key(k): camelize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [camelize(v) for v in obj]
    return obj


def _camel_key(key):
    if not isinstance(key, str) or "_" not in key:
        return key
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)
