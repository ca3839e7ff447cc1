"""MeetMux location-aware discovery backend."""
