"""Storage integrations for listfeed."""
