"""Health data backend: account recovery and key-value cache endpoints."""
