"""Certificate deployment automation for NAS appliances."""
