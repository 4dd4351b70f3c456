"""
LLM-assisted onboarding helpers: company autofill and goal drafting.

Both return plain dicts shaped like an agent's company_context / goals. Callers decide
what to do when the LLM is off or the answer is unusable.
"""

import json
import logging
from typing import Optional

from ..models.registry import PricingModel
from .llm import chat_simple

logger = logging.getLogger(__name__)

AUTOFILL_SYSTEM = (
    "You are a business research assistant. Given a company's email domain, "
    "describe the company.\n\n"
    "Answer with one JSON object and nothing else, with keys:\n"
    '  "company_name": string\n'
    '  "website": string (full https URL)\n'
    '  "domains": list of strings\n'
    '  "policies": string (one or two sentences on public policies, may be empty)\n'
    '  "pricing_model": one of "subscription", "usage", "flat", "hybrid"\n'
    '  "services": list of short strings\n'
    "If you are unsure, make your best guess from the domain name."
)

GOALS_SYSTEM = (
    "You are a strategy assistant helping a company configure its business bot. "
    "Given the company context, draft goals for the bot.\n\n"
    'Answer with one JSON object and nothing else: {"short_term": string, "long_term": string}. '
    "Each value is two or three sentences."
)


def parse_json_object(text: str) -> dict:
    """Parse an LLM answer that should be a JSON object. Tolerates ``` fences."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        raise ValueError("LLM answer contains no JSON object")
    data = json.loads(cleaned[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("LLM answer is not a JSON object")
    return data


def _normalize_pricing(value: Optional[str]) -> str:
    allowed = {p.value for p in PricingModel}
    value = (value or "").strip().lower()
    return value if value in allowed else PricingModel.SUBSCRIPTION.value


def format_company_for_prompt(company: dict) -> str:
    parts = []
    if company.get("company_name"):
        parts.append(f"Company: {company['company_name']}")
    if company.get("website"):
        parts.append(f"Website: {company['website']}")
    if company.get("pricing_model"):
        parts.append(f"Pricing model: {company['pricing_model']}")
    services = company.get("services") or []
    if services:
        parts.append(f"Services: {', '.join(services)}")
    if company.get("policies"):
        parts.append(f"Policies: {company['policies']}")
    return "\n".join(parts)


async def autofill_company_details(domain: str) -> dict:
    """Guess company context from an email domain."""
    answer = await chat_simple(
        prompt=f"Domain: {domain}",
        system=AUTOFILL_SYSTEM,
        temperature=0.3,
        json_mode=True,
    )
    data = parse_json_object(answer)
    data["pricing_model"] = _normalize_pricing(data.get("pricing_model"))
    data.setdefault("website", f"https://{domain}")
    data.setdefault("domains", [domain])
    logger.info("Autofilled company for %s → %s", domain, data.get("company_name"))
    return data


async def generate_business_goals(company: dict) -> dict:
    """Draft short- and long-term goals for the bot from its company context."""
    answer = await chat_simple(
        prompt=format_company_for_prompt(company) or "No company details provided.",
        system=GOALS_SYSTEM,
        temperature=0.7,
        json_mode=True,
    )
    data = parse_json_object(answer)
    return {
        "short_term": str(data.get("short_term", "")).strip(),
        "long_term": str(data.get("long_term", "")).strip(),
    }
