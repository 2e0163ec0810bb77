"""HTTP surface for hookledger (FastAPI)."""
