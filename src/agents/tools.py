"""Tool executor for model-invoked function calls.

The executor owns both halves of the tool contract: the declarative
definitions advertised to the model in ``session.update`` and the handlers
invoked when the model completes a call. Handlers here are illustrative; the
relay only depends on ``definitions()`` and ``execute()``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from agents.errors import ToolArgumentsError, UnknownToolError

LOGGER = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))

    def definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


_PRODUCT_CATALOG: tuple[dict[str, Any], ...] = (
    {"product_id": "TV-55-4K", "name": "Televisor 55 pulgadas 4K", "price": 649.0},
    {"product_id": "PH-X12", "name": "Teléfono inteligente X12", "price": 499.0},
    {"product_id": "LP-AIR14", "name": "Portátil ligero 14 pulgadas", "price": 899.0},
    {"product_id": "HP-NC300", "name": "Audífonos con cancelación de ruido", "price": 129.0},
)


async def get_weather(arguments: dict[str, Any]) -> dict[str, Any]:
    return {"location": arguments["location"], "result": "18°C"}


async def search_products(arguments: dict[str, Any]) -> dict[str, Any]:
    terms = [t for t in str(arguments["query"]).lower().split() if t]
    matches = [
        product
        for product in _PRODUCT_CATALOG
        if any(term in product["name"].lower() for term in terms)
    ]
    return {"query": arguments["query"], "products": matches}


async def validate_purchase(arguments: dict[str, Any]) -> dict[str, Any]:
    product = next(
        (p for p in _PRODUCT_CATALOG if p["product_id"] == arguments["product_id"]),
        None,
    )
    if product is None:
        return {"valid": False, "reason": "Producto no encontrado."}

    try:
        amount = float(arguments["amount"])
    except (TypeError, ValueError):
        return {"valid": False, "reason": "Monto inválido."}

    if amount < product["price"]:
        return {"valid": False, "reason": "El monto no cubre el precio del producto."}
    if arguments["payment_status"] != "completed":
        return {"valid": False, "reason": "El pago aún está pendiente."}
    return {
        "valid": True,
        "buyer_name": arguments["buyer_name"],
        "product_id": product["product_id"],
    }


def default_tools() -> list[Tool]:
    return [
        Tool(
            name="get_weather",
            description="Get the current weather for a location.",
            parameters={
                "type": "object",
                "properties": {"location": {"type": "string"}},
                "required": ["location"],
            },
            handler=get_weather,
        ),
        Tool(
            name="search_products",
            description="Search the electronics catalog for products matching a query.",
            parameters={
                "type": "object",
                "properties": {"query": {"type": "string"}},
                "required": ["query"],
            },
            handler=search_products,
        ),
        Tool(
            name="validate_purchase",
            description="Validate a purchase before confirming it to the buyer.",
            parameters={
                "type": "object",
                "properties": {
                    "buyer_name": {"type": "string"},
                    "amount": {"type": "number"},
                    "product_id": {"type": "string"},
                    "payment_status": {"type": "string", "enum": ["pending", "completed"]},
                },
                "required": ["buyer_name", "amount", "product_id", "payment_status"],
            },
            handler=validate_purchase,
        ),
    ]


class ToolExecutor:
    """Dispatches tool calls by name to registered handlers."""

    def __init__(self, tools: Iterable[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools if tools is not None else default_tools():
            self._tools[tool.name] = tool

    def knows(self, name: str) -> bool:
        return name in self._tools

    def definitions(self) -> list[dict[str, Any]]:
        return [tool.definition() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: dict[str, Any] | None) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        if arguments is None:
            raise ToolArgumentsError(f"Arguments for {name} are not a JSON object")

        missing = [field for field in tool.required if arguments.get(field) is None]
        if missing:
            raise ToolArgumentsError(f"Missing arguments for {name}: {', '.join(missing)}")

        LOGGER.info("Executing tool %s", name)
        return await tool.handler(arguments)
