"""
Repository Layer - Data Access

This layer handles all database queries for the advisor.
Repositories abstract away SQL details from business logic.

Author: TM3
Date: 2025-12-02
"""
from app.repositories.shop_record_repository import ShopRecordRepository

__all__ = [
    'ShopRecordRepository',
]
