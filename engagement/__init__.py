"""Weekly engagement engine for couples: challenges, points goals and streaks"""

__version__ = "0.1.0"
