"""
Exercise criteria for the form analysis agent.

Maps each supported exercise to the movement patterns the reasoning service
should focus on when counting reps and scoring form.
"""

from typing import Optional


# Maps exercise ID -> (exercise name, list of criteria)
EXERCISE_CRITERIA: dict[int, tuple[str, list[str]]] = {
    1: (
        "Push-ups",
        [
            "Body line: shoulders, hips and ankles stay in one straight line",
            "Depth: chest lowers until elbows reach about 90 degrees",
            "Elbow path: elbows track back at roughly 45 degrees, not flared",
            "Lockout: arms fully extended at the top of each rep",
            "Tempo: controlled lowering, no bouncing",
        ]
    ),
    2: (
        "Squats",
        [
            "Depth: hips descend to at least knee height",
            "Knee tracking: knees stay aligned over the toes",
            "Torso angle: chest up, limited forward lean",
            "Symmetry: left and right hips stay level",
            "Lockout: hips and knees fully extended at the top",
        ]
    ),
    3: (
        "Sitting Posture",
        [
            "Head position: neck stacked over the shoulders, no forward head",
            "Shoulder level: left and right shoulders at the same height",
            "Spine: upright, no slouching over time",
            "Stillness: posture held without drifting",
        ]
    ),
    4: (
        "Plank",
        [
            "Body line: shoulders, hips and ankles stay in one straight line",
            "Hip height: hips neither sagging nor piked",
            "Shoulder position: shoulders stacked over elbows or wrists",
            "Stability: minimal sway for the whole hold",
        ]
    ),
}

GENERIC_CRITERIA: list[str] = [
    "Range of motion: full and consistent across reps",
    "Symmetry: left and right sides move together",
    "Tempo: controlled movement speed",
    "Stability: no swinging or compensation",
]

# Name to ID mapping for lookup by name
EXERCISE_NAME_TO_ID: dict[str, int] = {
    name.lower(): id_ for id_, (name, _) in EXERCISE_CRITERIA.items()
}


def get_exercise_criteria(exercise_id: Optional[int] = None,
                          exercise_name: Optional[str] = None) -> tuple[str, list[str]]:
    """
    Get exercise name and criteria by ID or name.

    Args:
        exercise_id: Exercise ID (1-4)
        exercise_name: Exercise name (case-insensitive, partial match allowed)

    Returns:
        Tuple of (exercise_name, list of criteria strings)

    Raises:
        ValueError: If exercise not found
    """
    if exercise_id is not None:
        if exercise_id in EXERCISE_CRITERIA:
            return EXERCISE_CRITERIA[exercise_id]
        raise ValueError(
            f"Exercise ID {exercise_id} not found. Valid IDs: 1-{len(EXERCISE_CRITERIA)}"
        )

    if exercise_name is not None:
        name_lower = exercise_name.strip().lower()
        if name_lower in EXERCISE_NAME_TO_ID:
            return EXERCISE_CRITERIA[EXERCISE_NAME_TO_ID[name_lower]]
        # "squat" should find "Squats", "push up" should not need the hyphen
        compact = name_lower.replace("-", "").replace(" ", "").rstrip("s")
        for stored_name, id_ in EXERCISE_NAME_TO_ID.items():
            stored_compact = stored_name.replace("-", "").replace(" ", "").rstrip("s")
            if compact and (compact in stored_compact or stored_compact in compact):
                return EXERCISE_CRITERIA[id_]
        raise ValueError(f"Exercise '{exercise_name}' not found")

    raise ValueError("Must provide either exercise_id or exercise_name")


def format_criteria_for_prompt(criteria: list[str]) -> str:
    """Format criteria list as a bullet-point string for prompts."""
    return "\n".join(f"• {criterion}" for criterion in criteria)


def get_all_exercises() -> list[tuple[int, str]]:
    """Get list of all exercise IDs and names."""
    return [(id_, name) for id_, (name, _) in EXERCISE_CRITERIA.items()]
