"""Typed OSC argument values, their comparison, OSC time tags, port tables, automation slots and MIDI learn."""

__version__ = "0.1.0"