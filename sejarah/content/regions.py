from __future__ import annotations

from dataclasses import dataclass

from sejarah.api.models import RegionId


@dataclass(frozen=True, slots=True)
class RegionSpec:
    id: RegionId
    name: str
    # Countdown for the region's quiz in seconds; None means no timer.
    timer_seconds: int | None


REGION_SPECS: dict[RegionId, RegionSpec] = {
    RegionId.perlis: RegionSpec(RegionId.perlis, "Perlis", None),
    RegionId.kedah: RegionSpec(RegionId.kedah, "Kedah", None),
    RegionId.pulau_pinang: RegionSpec(RegionId.pulau_pinang, "Pulau Pinang", None),
    RegionId.perak: RegionSpec(RegionId.perak, "Perak", 600),
    RegionId.kuala_lumpur: RegionSpec(RegionId.kuala_lumpur, "Kuala Lumpur", 600),
    RegionId.selangor: RegionSpec(RegionId.selangor, "Selangor", 600),
    RegionId.negeri_sembilan: RegionSpec(RegionId.negeri_sembilan, "Negeri Sembilan", 300),
    RegionId.melaka: RegionSpec(RegionId.melaka, "Melaka", 300),
    # Crossword only.
    RegionId.johor: RegionSpec(RegionId.johor, "Johor", None),
    RegionId.pahang: RegionSpec(RegionId.pahang, "Pahang", None),
    RegionId.terengganu: RegionSpec(RegionId.terengganu, "Terengganu", None),
    RegionId.kelantan: RegionSpec(RegionId.kelantan, "Kelantan", None),
    RegionId.sabah: RegionSpec(RegionId.sabah, "Sabah", None),
    RegionId.sarawak: RegionSpec(RegionId.sarawak, "Sarawak", None),
}

STATE_TIMERS: dict[RegionId, int | None] = {rid: spec.timer_seconds for rid, spec in REGION_SPECS.items()}


def to_region_id(region: RegionId | str) -> RegionId:
    try:
        return RegionId(region) if not isinstance(region, RegionId) else region
    except ValueError as e:
        raise ValueError(f"Unknown region: {region}") from e


def get_state_timer(region: RegionId | str) -> int | None:
    return STATE_TIMERS[to_region_id(region)]


def has_state_timer(region: RegionId | str) -> bool:
    return get_state_timer(region) is not None
