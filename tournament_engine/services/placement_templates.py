"""
Placement Templates - predefined advancement templates and their validation rules.

All template validation lives here. The bracket generator imports from this
module; do NOT duplicate these rules elsewhere.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from tournament_engine.models.bracket import PlacementBracket, PlacementTemplate

# =============================================================================
# Predefined templates
# =============================================================================

PLACEMENT_TEMPLATES: List[PlacementTemplate] = [
    PlacementTemplate(
        id="simple-placement",
        name="Simple Placement",
        description="Group winners and runners-up play for the title, 3rd and 4th for consolation",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Championship",
                description="1st and 2nd place teams",
                positions=[1, 2],
                include_third_place=True,
            ),
            PlacementBracket(
                id="consolation",
                name="Consolation",
                description="3rd and 4th place teams",
                positions=[3, 4],
            ),
        ],
    ),
    PlacementTemplate(
        id="tiered-brackets",
        name="Tiered Brackets",
        description="Multiple brackets based on group performance",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Championship Bracket",
                description="Top 2 teams from each group",
                positions=[1, 2],
                include_third_place=True,
            ),
            PlacementBracket(
                id="consolation",
                name="Consolation Bracket",
                description="3rd and 4th place teams",
                positions=[3, 4],
                include_third_place=True,
            ),
            PlacementBracket(
                id="elimination",
                name="Elimination Bracket",
                description="5th place teams",
                positions=[5],
            ),
        ],
    ),
    PlacementTemplate(
        id="cross-group-placement",
        name="Cross-Group Placement",
        description="Group winners face off across groups",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Championship",
                description="Group winners face off",
                positions=[1],
                include_third_place=True,
            ),
        ],
    ),
    PlacementTemplate(
        id="finnish-traditional",
        name="Finnish Traditional",
        description="Traditional Finnish tournament placement system",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Mestaruusottelut",
                description="Championship matches for top teams",
                positions=[1, 2],
                include_third_place=True,
            ),
            PlacementBracket(
                id="sijoituspelit",
                name="Sijoituspelit",
                description="Placement matches for remaining teams",
                positions=[3, 4, 5, 6],
                include_third_place=True,
            ),
        ],
    ),
    PlacementTemplate(
        id="swiss-style",
        name="Swiss-Style Placement",
        description="Placement in tiers of four",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Championship Tier",
                positions=[1, 2, 3, 4],
                include_third_place=True,
            ),
            PlacementBracket(
                id="middle-tier",
                name="Middle Tier",
                positions=[5, 6, 7, 8],
                include_third_place=True,
            ),
            PlacementBracket(
                id="lower-tier",
                name="Lower Tier",
                positions=[9, 10, 11, 12],
                include_third_place=True,
            ),
        ],
    ),
    PlacementTemplate(
        id="custom-5-team",
        name="Custom 5-Team Group",
        description="Top 2 to championship, rest to consolation",
        brackets=[
            PlacementBracket(
                id="championship",
                name="Championship Bracket",
                positions=[1, 2],
            ),
            PlacementBracket(
                id="consolation",
                name="Consolation Bracket",
                positions=[3, 4, 5],
                include_third_place=True,
            ),
        ],
    ),
]

_TEMPLATES_BY_ID: Dict[str, PlacementTemplate] = {t.id: t for t in PLACEMENT_TEMPLATES}


def get_placement_template(template_id: str) -> Optional[PlacementTemplate]:
    """Return a deep copy of a predefined template, or None if unknown."""
    template = _TEMPLATES_BY_ID.get(template_id)
    return template.model_copy(deep=True) if template else None


# =============================================================================
# Validation
# =============================================================================


def validate_template(template: PlacementTemplate) -> List[str]:
    """
    Structural validation of a placement template.

    Returns a list of error messages (empty if valid).
    """
    errors: List[str] = []

    if not template.name or not template.name.strip():
        errors.append("Placement template name is required")

    if not template.brackets:
        errors.append("At least one bracket must be defined")

    bracket_ids = [b.id for b in template.brackets]
    if len(bracket_ids) != len(set(bracket_ids)):
        errors.append("Bracket IDs must be unique")

    for bracket in template.brackets:
        if not bracket.positions:
            errors.append(f"Bracket {bracket.id} has no positions")
        if any(p < 1 for p in bracket.positions):
            errors.append(f"Bracket {bracket.id} has a non-positive position")
        if len(bracket.positions) != len(set(bracket.positions)):
            errors.append(f"Bracket {bracket.id} lists a position more than once")

    all_positions = [p for b in template.brackets for p in set(b.positions)]
    if len(all_positions) != len(set(all_positions)):
        errors.append("Team positions cannot be assigned to multiple brackets")

    return errors


def validate_against_group_sizes(
    template: PlacementTemplate, group_sizes: Sequence[Tuple[str, int]]
) -> Optional[str]:
    """
    Check every targeted rank exists in every group.

    Args:
        group_sizes: (group name, team count) pairs, in group order

    Returns None if valid, or an error message if the template targets more
    positions than a group has teams.
    """
    if not group_sizes:
        return "No group standings supplied"
    for bracket in template.brackets:
        for position in sorted(bracket.positions):
            for group_name, size in group_sizes:
                if position > size:
                    return (
                        f"Bracket {bracket.id} targets position {position} but "
                        f"{group_name} has only {size} team(s)"
                    )
    return None
