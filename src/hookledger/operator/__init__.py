"""Off-ledger settlement authority: matches rebates to commitments each epoch."""
