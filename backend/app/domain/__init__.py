"""
Domain Layer - Business Entities

This layer contains the models exchanged between the advisor services.
Pydantic models enforce type safety and validation across the application.

Author: TM3
Date: 2025-12-02
"""
from app.domain.business_context import BusinessContext, DailySales
from app.domain.action import Action, TextAction
from app.domain.tool import Tool, StaticPriority, DynamicPriority, InvalidToolDefinition, make_tool

__all__ = [
    'BusinessContext',
    'DailySales',
    'Action',
    'TextAction',
    'Tool',
    'StaticPriority',
    'DynamicPriority',
    'InvalidToolDefinition',
    'make_tool',
]
