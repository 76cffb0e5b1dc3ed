"""Shared infrastructure for kiosk_lite: pooled HTTP clients and the clock."""
