"""Reasoning-service prompt templates."""

from __future__ import annotations

DATA_NEEDS_PROMPT = """
As a planning assessment assistant, analyse this query and context to decide which additional
data sources would improve a comprehensive planning assessment.

Query: "{query}"

Context:
{context}

Local results found: {local_summary}

Consider:
1. Planning application precedents or appeal decisions for similar proposals?
2. Specific local plan policies (policy interpretation, development standards)?
3. Spatial constraint data (heritage, environmental, planning designations)?
4. Up to {max_queries} targeted follow-up search queries.

Return JSON:
{{
    "needsPrecedentData": true | false,
    "needsPolicyData": true | false,
    "needsConstraintData": true | false,
    "constraintTypes": ["conservation_areas", "listed_buildings", "flood_zones"],
    "additionalQueries": ["<query 1>", "<query 2>"],
    "reasoning": "<brief explanation>"
}}

Directly return JSON only."""

GROUNDED_SEARCH_PROMPT = """
You are grounding a planning assessment whose retrieved policy evidence is thin.

Search query: "{query}"

List the planning topics this query touches and quote short, factual snippets of national or
local planning policy that bear on it. Include policy references (e.g. "NPPF para 130",
"Policy DM12") inside the snippets where you know them.

Return JSON:
{{
    "inferredTopics": ["<topic>", ...],
    "snippets": ["<snippet>", ...]
}}

Return at most {max_snippets} snippets. Directly return JSON only."""
