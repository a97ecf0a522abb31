"""Popup GUI: controller, message channel, settings store and widget."""
