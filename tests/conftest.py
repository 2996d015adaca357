"""Shared test fixtures for the prd-extraction test suite."""
from __future__ import annotations

import pytest

from src.shared.models.entity import (
    EntitySource,
    EntitySourceType,
)

ORDER_PRD = """\
# Order Management System

## Overview
Manages customer orders from entry to fulfilment.

## Order Module

### FR-001: Create Order
The system must allow sales staff to create new orders.
Priority: High

**Acceptance Criteria:**
- Order is saved with status Draft
- Order total is calculated automatically

#### Business Rules
- BR-001-A: Total must be positive
- BR-001-B: Calculate total as `sum(line.amount)`

### FR-002: Approve Order
Managers should review orders in an approval workflow.

- VR-001: Approval note is not empty
  Error: "Approval note cannot be empty"

## Screens

### SCR-001: Order Form
Route: /orders/new

| Field | Type | Mandatory | Entity Field |
|-------|------|-----------|--------------|
| Customer | Dropdown | Yes | Order.customerId |
| Order Date | Date | Yes | Order.orderDate |
| Notes | Textarea | No | Order.notes |

### SCR-002: Order List
Shows all orders for FR-002.

## Data Requirements

### Customer
Customers who place orders.
- name: string
- email: varchar
- phone: string

### Order
- orderNumber: string
- customerId: uuid
- total: decimal

### Order Status
- draft: Draft
- approved: Approved
"""


@pytest.fixture()
def order_prd() -> str:
    """A complete PRD with requirements, rules, screens and data requirements."""
    return ORDER_PRD


@pytest.fixture()
def ai_source() -> EntitySource:
    """Provenance used for externally extracted entities."""
    return EntitySource(type=EntitySourceType.AI_EXTRACTED)
