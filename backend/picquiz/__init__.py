"""
Picture quiz backend: exam sessions, practice loop and anti-cheat engine.
"""
