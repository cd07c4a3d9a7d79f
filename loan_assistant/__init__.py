"""Personal-loan assistant client: gateway chat streaming, KYC, sanction letters, calculators."""
