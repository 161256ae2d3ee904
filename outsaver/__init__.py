"""
outsaver - архивация клипов outplayed.tv из чата в MEGA
"""
__version__ = "0.1.0"
