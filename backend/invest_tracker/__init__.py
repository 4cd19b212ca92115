"""Invest Tracker service package."""
