from typing import List, Optional

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel

from env import LLM_MAX_OUTPUT_TOKENS, LLM_MODEL_NAME, LLM_TEMPERATURE
from interfaces.productModels import ProductCategory, ScanPreferences
from logger_manager import log_info
from services.language_detector import detect_language

CATEGORY_NAMES = ", ".join(category.value for category in ProductCategory)

SYSTEM_PROMPT = f"""
# FOOD LABEL INGREDIENT ANALYSIS TASK

You are an ingredient analysis assistant. Users scan food product labels with their phone
and you explain WHAT'S IN THERE, focusing on the ingredients and what they actually are.

## INSTRUCTIONS:
1. Extract every ingredient listed on the label.
2. The label may be in any language. Always answer in English and keep original terms in
   parentheses when helpful.
3. If the product name looks garbled, infer a reasonable name from the ingredients and
   the rest of the label.
4. For each ingredient explain in plain words what it is (plant/animal/synthetic), why it
   is in the food and whether it raises any health concern.
5. List common allergens (milk, eggs, nuts, wheat, soy, fish, shellfish...).
6. Flag concerning additives such as artificial colors, artificial sweeteners, flavor
   enhancers, preservatives and highly processed oils.

## FORMAT YOUR RESPONSE AS JSON:
{{
  "productName": "string or null",
  "brandName": "string or null",
  "category": "one of: {CATEGORY_NAMES}",
  "ingredients": [
    {{
      "name": "ingredient name",
      "explanation": "simple explanation of what this ingredient is and its purpose",
      "concernLevel": "none/low/medium/high",
      "concernReason": "explanation of concern if any"
    }}
  ],
  "allergens": ["array", "of", "allergens"],
  "concerningAdditives": [
    {{
      "name": "additive name",
      "explanation": "what this additive is and why it might be concerning",
      "concernLevel": "low/medium/high"
    }}
  ],
  "processingLevel": "minimally/moderately/highly",
  "naturalContentPercentage": (number between 0-100),
  "simpleSummary": "1-2 sentences on what this product primarily consists of",
  "recommendationsForHealthierOptions": "1-2 suggestions for healthier alternatives",
  "language": "original language of the label"
}}

IMPORTANT: Return only the JSON, with double quotes around property names and string values
and no trailing commas. If the text is not from a food label, respond with a JSON object
holding a single "error" field explaining the issue.
"""


class AnalysisRequest(BaseModel):
    """Everything sent to the analysis service for one scan."""
    system_prompt: str
    raw_text: str
    detected_language: str
    model_name: str = LLM_MODEL_NAME
    temperature: float = LLM_TEMPERATURE
    max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS

    @property
    def user_message(self) -> str:
        return (
            f"Here is the text extracted from a food product label:\n\n\"{self.raw_text}\"\n\n"
            f"Detected language: {self.detected_language}. Please analyze this thoroughly and "
            f"provide the complete structured information about the ingredients in English."
        )

    def to_messages(self) -> List[BaseMessage]:
        return [
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=self.user_message),
        ]


def build_analysis_request(raw_text: str, preferences: Optional[ScanPreferences] = None) -> Optional[AnalysisRequest]:
    """Assemble the analysis request, or None when the scan must stay offline."""
    preferences = preferences or ScanPreferences()
    if preferences.offline_mode:
        log_info("Offline mode set, no analysis request built")
        return None

    detected_language = detect_language(raw_text)
    log_info(f"Building analysis request, detected language: {detected_language}")
    return AnalysisRequest(
        system_prompt=SYSTEM_PROMPT,
        raw_text=raw_text,
        detected_language=detected_language,
    )
