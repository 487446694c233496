"""Prompt templates for ingredient analysis."""

from __future__ import annotations

_INGREDIENT_ANALYSIS = """\
You are a food safety expert specializing in ingredient analysis for Indian consumers.
Analyze the following ingredient list and provide a health assessment.

INGREDIENT LIST:
{ingredients}

Assess these ingredients against FSSAI (Food Safety and Standards Authority of India)
regulations and international food safety standards.

Focus on:
- Trans fats and harmful oils
- Artificial colours and preservatives (E-numbers)
- High sodium content and MSG
- Artificial sweeteners and additives
- Allergens and potential health risks

Reply in the following JSON format:
{{
  "healthScore": <integer 1-10, where 10 is healthiest>,
  "totalIngredients": <number of ingredients identified>,
  "categories": {{
    "safe": ["safe ingredients"],
    "moderate": ["ingredients with moderate health concerns"],
    "highConcern": ["ingredients with high health risks"]
  }},
  "advice": "One-sentence consumption recommendation",
  "warnings": ["specific health warnings"],
  "details": {{
    "<ingredient name>": {{
      "risk": "high|moderate|low",
      "description": "Brief explanation of health impact"
    }}
  }}
}}

Key considerations:
- Trans fats are always high concern
- E102, E110, E122, E124, E129 (artificial colours) are moderate to high concern
- E211, E223, E320, E321 (preservatives) are moderate concern
- MSG and high sodium are moderate concern
- Natural ingredients like flour, water and salt in normal amounts are safe
- Put every ingredient in exactly one category
- Be strict but fair

Return only valid JSON without any additional text or formatting.
"""


def ingredient_analysis(ingredient_text: str) -> str:
    """Build the analysis prompt for cleaned label text."""
    return _INGREDIENT_ANALYSIS.format(ingredients=ingredient_text.strip())
