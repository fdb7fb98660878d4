from __future__ import annotations

from dataclasses import dataclass

NAME_MIN_LEN = 2
NAME_MAX_LEN = 30
AGE_MIN = 6
AGE_MAX = 12


@dataclass(frozen=True, slots=True)
class ProfileForm:
    name: str
    age: int


def validate_profile_form(name: str, age: str | int | None) -> tuple[ProfileForm | None, dict[str, str]]:
    """Login form checks, run before `GameEngine.set_player_profile`.

    Returns the cleaned form (trimmed name, int age) or the per-field errors,
    worded the way the login screen shows them.
    """

    errors: dict[str, str] = {}

    trimmed = (name or "").strip()
    if not trimmed:
        errors["name"] = "Nama diperlukan"
    elif len(trimmed) < NAME_MIN_LEN:
        errors["name"] = f"Nama terlalu pendek (min {NAME_MIN_LEN} aksara)"
    elif len(trimmed) > NAME_MAX_LEN:
        errors["name"] = f"Nama terlalu panjang (max {NAME_MAX_LEN} aksara)"

    age_num: int | None = None
    if age is None or (isinstance(age, str) and not age.strip()):
        errors["age"] = "Umur diperlukan"
    else:
        try:
            age_num = int(age)
        except (TypeError, ValueError):
            errors["age"] = "Umur mesti nombor"
        else:
            if age_num < AGE_MIN:
                errors["age"] = f"Umur minimum adalah {AGE_MIN} tahun"
            elif age_num > AGE_MAX:
                errors["age"] = f"Umur maksimum adalah {AGE_MAX} tahun"

    if errors or age_num is None:
        return None, errors
    return ProfileForm(name=trimmed, age=age_num), {}
