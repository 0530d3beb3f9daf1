"""
Prompt composition for the vision model.

The prompt is assembled from named sections. Which sections appear, and in
what order, comes from SECTION_TABLE keyed on (advisory mode, output format);
the closing rules come from FORMAT_RULES and MODE_RULES.
"""
from typing import Callable, Dict, List, Optional, Tuple

from plantdx.core.config import AdvisoryMode, OutputFormat, ServiceConfig

PREAMBLE = (
    "You are an expert agricultural pathologist specializing in East African crops. "
    "Analyze this plant image and report on the plant's health."
)


def _crop_label(crop: str) -> str:
    return crop.replace("_", " ")


def crop_identification(crop: Optional[str]) -> str:
    if crop:
        label = _crop_label(crop)
        return (
            "CROP IDENTIFICATION:\n"
            f"The farmer reports this plant is {label}. Verify that the image shows {label}. "
            "If it does not, say so clearly and state which plant it appears to be, "
            "with a confidence level (High/Medium/Low)."
        )
    return (
        "CROP IDENTIFICATION:\n"
        "The crop was not specified. Identify the plant species from the image, "
        "with a confidence level (High/Medium/Low)."
    )


def health_status(crop: Optional[str]) -> str:
    return (
        "HEALTH STATUS:\n"
        "Give the overall plant health as one of: Healthy, Mild Issue, Moderate Issue, Severe Issue. "
        "State your confidence level (High/Medium/Low)."
    )


def issue_detection(crop: Optional[str]) -> str:
    focus = (
        f" Focus on diseases, pests and disorders common to {_crop_label(crop)} in East African farming conditions."
        if crop else ""
    )
    return (
        "ISSUES DETECTED:\n"
        "Repeat this block for each disease, pest, or nutrient deficiency you detect:\n"
        "- Issue name (common and scientific name if applicable)\n"
        "- Type (disease / pest / nutrient deficiency / abiotic stress)\n"
        "- Severity (Low/Medium/High)\n"
        "- Affected plant parts\n"
        "- Key visible symptoms\n"
        "If no issues are visible, say so." + focus
    )


def growth_stage(crop: Optional[str]) -> str:
    return (
        "GROWTH STAGE:\n"
        "Estimate the growth stage visible in the image (seedling, vegetative, flowering, "
        "fruiting, maturity) and note how it affects the issues above."
    )


def diagnostic_notes(crop: Optional[str]) -> str:
    return (
        "DIAGNOSTIC NOTES:\n"
        "Note image quality limitations, alternative explanations for the symptoms, and "
        "whether a field inspection by an agricultural extension officer is advisable."
    )


def treatment_recommendations(crop: Optional[str]) -> str:
    return (
        "TREATMENT RECOMMENDATIONS:\n"
        "For each issue detected, give prioritized, actionable steps:\n"
        "- Organic options (cultural practices, biological controls, locally available remedies)\n"
        "- Chemical options (active ingredient, application timing, pre-harvest interval)\n"
        "- Preventive measures for the next season\n"
        "Prefer treatments that are affordable and locally available to East African farmers."
    )


def safety_disclaimer(crop: Optional[str]) -> str:
    return (
        "SAFETY DISCLAIMER:\n"
        "End with a short reminder to read product labels, wear protective equipment when "
        "applying chemicals, respect pre-harvest intervals, and confirm with a local "
        "agricultural extension officer before acting on this report."
    )


Section = Callable[[Optional[str]], str]

DIAGNOSIS_SECTIONS: Tuple[Section, ...] = (
    crop_identification,
    health_status,
    issue_detection,
    growth_stage,
    diagnostic_notes,
)

ADVISORY_SECTIONS: Tuple[Section, ...] = DIAGNOSIS_SECTIONS + (
    treatment_recommendations,
    safety_disclaimer,
)

SECTION_TABLE: Dict[Tuple[AdvisoryMode, OutputFormat], Tuple[Section, ...]] = {
    (AdvisoryMode.DIAGNOSIS_ONLY, OutputFormat.STRUCTURED): DIAGNOSIS_SECTIONS,
    (AdvisoryMode.DIAGNOSIS_ONLY, OutputFormat.TEXT): DIAGNOSIS_SECTIONS,
    (AdvisoryMode.FULL_ADVISORY, OutputFormat.STRUCTURED): ADVISORY_SECTIONS,
    (AdvisoryMode.FULL_ADVISORY, OutputFormat.TEXT): ADVISORY_SECTIONS,
}

FORMAT_RULES: Dict[OutputFormat, List[str]] = {
    OutputFormat.STRUCTURED: [
        "Use the section titles above, in the same order, as headings.",
        "Use short bullet points under each heading.",
        "Keep each bullet to one sentence.",
    ],
    OutputFormat.TEXT: [
        "Write plain prose paragraphs, one paragraph per section above, in the same order.",
        "Do not use headings, bullet points, tables or markdown.",
    ],
}

MODE_RULES: Dict[AdvisoryMode, str] = {
    AdvisoryMode.DIAGNOSIS_ONLY: (
        "Limit the report to observation and diagnosis. Do not recommend products, "
        "remedies, doses or management actions of any kind."
    ),
    AdvisoryMode.FULL_ADVISORY: (
        "Include the treatment recommendations and safety disclaimer sections, covering "
        "organic options, chemical options and preventive measures."
    ),
}

GENERAL_RULES: List[str] = [
    "Be specific: name the disease or pest instead of saying \"disease\".",
    "If the image is unclear or does not show a plant, say so.",
    "If you are uncertain, say so and suggest consulting an agricultural extension officer.",
    "Use simple language farmers can understand.",
]

TOOL_DESCRIPTIONS: Dict[AdvisoryMode, str] = {
    AdvisoryMode.DIAGNOSIS_ONLY: (
        "Diagnose plant diseases, pests, and health issues from a plant photograph "
        "using AI vision analysis"
    ),
    AdvisoryMode.FULL_ADVISORY: (
        "Diagnose plant diseases, pests, and health issues from a plant photograph "
        "using AI vision analysis, with treatment recommendations"
    ),
}


class PromptComposer:
    """Builds the vision-model instruction for a fixed ServiceConfig."""

    def __init__(self, config: ServiceConfig):
        self.config = config

    def sections(self) -> Tuple[Section, ...]:
        return SECTION_TABLE[(self.config.advisory_mode, self.config.output_format)]

    def compose(self, crop: Optional[str] = None) -> str:
        crop = crop or None
        body = "\n\n".join(section(crop) for section in self.sections())

        rules = list(FORMAT_RULES[self.config.output_format])
        rules.append(MODE_RULES[self.config.advisory_mode])
        rules.extend(GENERAL_RULES)
        rules_text = "\n".join(f"- {r}" for r in rules)

        return (
            f"{PREAMBLE}\n\n"
            "Cover the following sections:\n\n"
            f"{body}\n\n"
            "Formatting rules:\n"
            f"{rules_text}"
        )

    def describe_tool(self) -> str:
        return TOOL_DESCRIPTIONS[self.config.advisory_mode]
