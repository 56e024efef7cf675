"""
Storefront Example — a shopper's cart from first click to placed order.

Shows the whole reconciliation path:
- An anonymous cart persisted locally (SQLite through SQLAlchemy)
- Login merges it into the server cart
- Stock drops underneath the shopper and the cart is clamped
- Checkout gates rush delivery, quotes fees, and places the order once

Structure:
- repo.py  — Simulated backend services (catalog, cart, inventory, shipping, orders)
- demo.py  — The scripted walk-through
- main.py  — Entry point

Run: uv run python -m examples.storefront.main
"""
