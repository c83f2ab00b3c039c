# Overview: Service-layer wrapper around the OpenAI chat completions API.

"""
Single-shot AI helpers.

Each helper sends one fixed system prompt plus a user message and returns the
completion text. Nothing here raises to the caller: an empty completion
yields a default sentence and any API failure yields a fallback sentence.
There is no retry (the client is built with max_retries=0), no streaming and
no conversation memory; callers resend context themselves.
"""

from __future__ import annotations

from flask import current_app
from openai import OpenAI, OpenAIError

from ..extensions import db
from ..models import Order, Product


CLIENT_EXTENSION_KEY = "openai"

INVENTORY_SAMPLE = 20
INVENTORY_SUMMARIZED = 10
ORDER_SAMPLE = 10
ORDER_SUMMARIZED = 5


def get_client() -> OpenAI:
    """Lazily build one client per app; tests swap it via app.extensions."""
    client = current_app.extensions.get(CLIENT_EXTENSION_KEY)
    if client is None:
        client = OpenAI(
            api_key=current_app.config["OPENAI_API_KEY"],
            timeout=current_app.config["OPENAI_TIMEOUT"],
            max_retries=0,
        )
        current_app.extensions[CLIENT_EXTENSION_KEY] = client
    return client


def complete(
    system_prompt: str,
    user_message: str,
    *,
    max_tokens: int,
    temperature: float,
    default: str,
    fallback: str,
) -> str:
    try:
        response = get_client().chat.completions.create(
            model=current_app.config["OPENAI_MODEL"],
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except OpenAIError:
        current_app.logger.warning("OpenAI request failed; returning fallback text", exc_info=True)
        return fallback

    choices = getattr(response, "choices", None) or []
    content = choices[0].message.content if choices else None
    return content or default


def generate_product_description(product_name: str, category: str) -> str:
    return complete(
        "You write product descriptions for a business inventory system. "
        "Keep them concise and professional, focused on features and benefits.",
        f"Write a 2-3 sentence product description for: {product_name} in the {category} category.",
        max_tokens=150,
        temperature=0.7,
        default="High-quality product for your business needs.",
        fallback="Professional quality product designed for business excellence.",
    )


def lowest_stock_products(limit: int = INVENTORY_SAMPLE) -> list[Product]:
    return (
        db.session.query(Product)
        .order_by(Product.current_stock.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def latest_orders(limit: int = ORDER_SAMPLE) -> list[Order]:
    return (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def summarize_products(products: list[Product]) -> str:
    return "\n".join(
        f"{p.name}: {p.current_stock} units (Reorder: {p.reorder_level}, Status: {p.status})"
        for p in products[:INVENTORY_SUMMARIZED]
    )


def inventory_insights(products: list[Product]) -> str:
    return complete(
        "You are an inventory analyst. Give short, actionable observations "
        "about stock levels and what to do next.",
        f"Give 3 key insights about this inventory:\n{summarize_products(products)}",
        max_tokens=200,
        temperature=0.5,
        default="Inventory levels are within normal range.",
        fallback="Unable to generate inventory insights at this time.",
    )


def summarize_orders(orders: list[Order]) -> str:
    return "\n".join(
        f"Order {o.order_number}: ${o.total_amount} - {o.status} ({len(o.items)} items)"
        for o in orders[:ORDER_SUMMARIZED]
    )


def order_insights(orders: list[Order]) -> str:
    return complete(
        "You are a business analyst. Give short observations about order "
        "patterns and business performance.",
        f"Give 2-3 key insights about these recent orders:\n{summarize_orders(orders)}",
        max_tokens=150,
        temperature=0.5,
        default="Order processing is running smoothly.",
        fallback="Unable to generate order insights at this time.",
    )


def chat(message: str, context: str | None = None) -> str:
    if context:
        system_prompt = (
            "You are an assistant for a small-business ERP covering inventory, "
            f"orders and day-to-day operations. Context: {context}"
        )
    else:
        system_prompt = (
            "You are an assistant for a small-business ERP covering inventory, "
            "order processing and business analytics. Keep answers short and actionable."
        )
    return complete(
        system_prompt,
        message,
        max_tokens=300,
        temperature=0.7,
        default="I apologize, but I cannot process your request at the moment.",
        fallback="I apologize, but I am unable to respond at this time. Please try again.",
    )
