"""Inspection priority and promotion eligibility."""
