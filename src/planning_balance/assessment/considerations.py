"""Material consideration catalogue.

Versioned module constant: the catalogue and its in-category weights are not
runtime-configurable. Bump ``CATALOGUE_VERSION`` whenever an entry changes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

log = logging.getLogger(__name__)

CATALOGUE_VERSION = "2024.1"


@dataclass(frozen=True)
class Consideration:
    """One catalogue entry."""

    category: str
    subcategory: str
    description: str
    weight: int
    mandatory: bool = False

    @property
    def id(self) -> str:
        return f"{_slug(self.category)}.{_slug(self.subcategory)}"


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


# (category, subcategory, description, weight, mandatory)
_ENTRIES: tuple[tuple[str, str, str, int, bool], ...] = (
    # Statutory framework
    ("Statutory", "Development Plan", "Compliance with adopted local plan policies", 100, True),
    ("Statutory", "NPPF", "National Planning Policy Framework compliance", 100, True),
    ("Statutory", "Planning Practice Guidance", "Government planning guidance compliance", 80, True),
    ("Statutory", "Legal Obligations", "S106 agreements and CIL requirements", 90, True),
    # Design
    ("Design", "Character and Appearance", "Impact on character and appearance of area", 85, True),
    ("Design", "Scale and Massing", "Appropriateness of scale, height and massing", 80, False),
    ("Design", "Materials and Details", "Quality and appropriateness of materials", 65, False),
    ("Design", "Architectural Quality", "Architectural design quality and innovation", 70, False),
    ("Design", "Public Realm", "Contribution to public realm and streetscape", 75, False),
    # Transport
    ("Transport", "Highway Safety", "Impact on highway and pedestrian safety", 95, True),
    ("Transport", "Traffic Generation", "Traffic generation and capacity impacts", 85, True),
    ("Transport", "Parking Provision", "Adequacy of parking provision", 70, False),
    ("Transport", "Public Transport", "Accessibility by public transport", 80, False),
    ("Transport", "Cycling and Walking", "Provision for cycling and walking", 75, False),
    ("Transport", "Servicing and Delivery", "Adequacy of servicing arrangements", 60, False),
    # Heritage
    ("Heritage", "Listed Buildings", "Impact on listed buildings and their setting", 100, True),
    ("Heritage", "Conservation Areas", "Impact on conservation area character", 95, True),
    ("Heritage", "Archaeological Heritage", "Archaeological significance and impact", 85, False),
    ("Heritage", "Non-designated Heritage", "Impact on locally important heritage assets", 70, False),
    ("Heritage", "Historic Landscape", "Impact on historic landscape character", 65, False),
    # Environment
    ("Environment", "Flood Risk", "Flood risk assessment and mitigation", 100, True),
    ("Environment", "Ecology and Biodiversity", "Impact on ecology and biodiversity", 90, True),
    ("Environment", "Trees and Landscaping", "Impact on trees and landscape quality", 75, False),
    ("Environment", "Contamination", "Land contamination assessment", 85, False),
    ("Environment", "Air Quality", "Air quality impact assessment", 70, False),
    ("Environment", "Noise and Vibration", "Noise and vibration impact", 65, False),
    ("Environment", "Sustainability", "Environmental sustainability measures", 80, False),
    # Amenity
    ("Amenity", "Privacy and Overlooking", "Impact on privacy and overlooking", 85, True),
    ("Amenity", "Daylight and Sunlight", "Daylight and sunlight impact assessment", 80, False),
    ("Amenity", "Outlook and Enclosure", "Impact on outlook and sense of enclosure", 75, False),
    ("Amenity", "Noise and Disturbance", "Noise and disturbance to neighbors", 70, False),
    ("Amenity", "Garden and Amenity Space", "Adequacy of private amenity space", 65, False),
    # Housing
    ("Housing", "Housing Need", "Contribution to housing need and supply", 90, False),
    ("Housing", "Affordable Housing", "Affordable housing provision", 95, True),
    ("Housing", "Housing Mix", "Appropriateness of housing mix", 75, False),
    ("Housing", "Housing Standards", "Compliance with space and design standards", 80, True),
    ("Housing", "Accessible Housing", "Provision for accessible and adaptable housing", 85, True),
    # Economic
    ("Economic", "Economic Benefits", "Economic benefits and job creation", 75, False),
    ("Economic", "Viability", "Development viability and deliverability", 80, False),
    ("Economic", "Town Centre Impact", "Impact on town centre vitality", 85, False),
    ("Economic", "Tourism Impact", "Impact on tourism and local economy", 60, False),
    # Infrastructure
    ("Infrastructure", "Education Provision", "Impact on school capacity and provision", 80, False),
    ("Infrastructure", "Healthcare Provision", "Impact on healthcare capacity", 75, False),
    ("Infrastructure", "Utilities Capacity", "Utilities infrastructure capacity", 70, False),
    ("Infrastructure", "Waste Management", "Waste management provision", 65, False),
    ("Infrastructure", "Digital Infrastructure", "Digital connectivity provision", 55, False),
    # Procedural
    ("Procedural", "EIA Requirements", "Environmental Impact Assessment requirements", 100, True),
    ("Procedural", "Consultation Response", "Statutory and public consultation responses", 85, True),
    ("Procedural", "Planning History", "Relevant planning history and precedents", 70, False),
    ("Procedural", "Policy Compliance", "Comprehensive policy compliance assessment", 95, True),
    # Climate
    ("Climate", "Climate Change Adaptation", "Climate change adaptation measures", 80, False),
    ("Climate", "Carbon Emissions", "Carbon emissions and net zero contribution", 75, False),
    ("Climate", "Renewable Energy", "Renewable energy provision", 70, False),
    ("Climate", "Water Management", "Sustainable water management", 75, False),
    # Other
    ("Other", "Human Rights", "Human rights considerations", 85, True),
    ("Other", "Equality and Diversity", "Equality impact and accessibility", 80, True),
    ("Other", "Crime Prevention", "Crime prevention and community safety", 65, False),
    ("Other", "Health and Wellbeing", "Public health and wellbeing impacts", 70, False),
)

CATALOGUE: tuple[Consideration, ...] = tuple(Consideration(*entry) for entry in _ENTRIES)


def categories() -> list[str]:
    """Category names in catalogue order."""
    return list(dict.fromkeys(c.category for c in CATALOGUE))


def select(subcategories: Iterable[str] | None = None) -> dict[str, list[Consideration]]:
    """Catalogue grouped by category, optionally limited to ``subcategories``.

    Unknown names are logged and skipped. An empty selection, or one with no
    known names left, means the whole catalogue.
    """
    wanted = {s.lower() for s in subcategories or ()}
    unknown = wanted - {c.subcategory.lower() for c in CATALOGUE}
    if unknown:
        log.warning(f"Ignoring unknown subcategories: {sorted(unknown)}")
        wanted -= unknown
    grouped: dict[str, list[Consideration]] = {}
    for consideration in CATALOGUE:
        if wanted and consideration.subcategory.lower() not in wanted:
            continue
        grouped.setdefault(consideration.category, []).append(consideration)
    return grouped
