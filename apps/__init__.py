"""Delivery screens - owner dashboard and customer order history."""
