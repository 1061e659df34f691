"""cadre - define agents and run tasks through an analyze/plan/execute/respond pipeline."""

__version__ = "1.0.0"
