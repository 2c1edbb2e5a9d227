"""BitLogic: programmable escrow with proof-gated release and cross-environment triggers."""

__version__ = "1.0.0"
