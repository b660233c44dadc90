"""Kiosk display: render sinks, clock, weather and calendar refreshers."""
