"""Platform rollout orchestration: coordinated, health-checked, reversible deployments."""

__version__ = "0.1.0"
