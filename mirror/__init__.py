"""
Smart mirror kiosk package

Root package for the mirror kiosk: an ambient display that renders the time,
weather and upcoming calendar events, and listens for a spoken wake phrase to
forward voice commands to the mirror's command endpoint.

Core modules:
- api: Async client for the mirror backend (chat, weather, calendar)
- display: Board sinks, HTTP kiosk page, clock/weather/calendar refreshers
- voice: Wake-word / command listening pipeline and recovery
- kiosk: Runtime wiring and the ``mirror-kiosk`` entry point
"""

__version__ = "0.4.2"
