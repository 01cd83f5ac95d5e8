"""Land registry gateway: ledger mirror and three-party transfer approvals."""
