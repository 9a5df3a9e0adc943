"""Render a tenant's structured chatbot config into one system prompt."""

from typing import List, Optional

from relay_api.schemas.chatbot_config import BusinessInfo, ChatbotConfig, ServicePlan

GENERIC_SYSTEM_PROMPT = (
    "You are a friendly customer support assistant for a small business. "
    "Answer clearly and concisely. If you do not know the answer, say so and "
    "offer to connect the customer with the team."
)

_BUSINESS_FIELDS = (
    ("name", "Name"),
    ("domain", "Website"),
    ("email", "Email"),
    ("location", "Location"),
    ("description", "About"),
    ("guarantee", "Guarantee"),
)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def format_price(plan: ServicePlan) -> str:
    price = plan.price
    if isinstance(price, float) and price.is_integer():
        price = int(price)
    text = f"${price}"
    if plan.currency:
        text += f" {plan.currency}"
    if plan.period:
        text += f"/{plan.period}"
    return text


def _render_business_info(info: Optional[BusinessInfo]) -> Optional[str]:
    if info is None:
        return None
    lines = [f"{label}: {getattr(info, field)}" for field, label in _BUSINESS_FIELDS if getattr(info, field)]
    if not lines:
        return None
    return "Business Information:\n" + "\n".join(lines)


def _render_plan(plan: ServicePlan) -> str:
    header = plan.name
    if plan.badge:
        header += f" ({plan.badge})"
    lines = [header, f"Price: {format_price(plan)}"]
    if plan.features:
        lines.append(_bullets(plan.features))
    if plan.savings:
        lines.append(f"Savings: {plan.savings}")
    return "\n".join(lines)


def render_system_prompt(config: Optional[ChatbotConfig]) -> str:
    """Build the system prompt for a tenant.

    Sections are emitted in a fixed order and only when their source data is
    present, so the same config always renders to the same string and the
    model never sees an empty heading. A missing or empty config yields
    ``GENERIC_SYSTEM_PROMPT``.
    """
    if config is None or config.is_empty():
        return GENERIC_SYSTEM_PROMPT

    sections: List[str] = []

    if config.identity:
        sections.append(config.identity.strip())

    if config.role:
        sections.append("Your Role:\n" + _bullets(config.role))

    if config.rules:
        sections.append("Guidelines:\n" + _bullets(config.rules))

    business = _render_business_info(config.business_info)
    if business:
        sections.append(business)

    if config.service_plans:
        plans = "\n\n".join(_render_plan(plan) for plan in config.service_plans)
        sections.append("Services & Pricing:\n" + plans)

    if config.faq:
        pairs = "\n\n".join(f"Q: {item.q}\nA: {item.a}" for item in config.faq)
        sections.append("Common Questions:\n" + pairs)

    if config.business_hours:
        sections.append(f"Business Hours: {config.business_hours}")

    return "\n\n".join(sections)
