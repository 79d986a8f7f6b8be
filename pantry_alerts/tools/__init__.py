# Command-line tools: alerts_cli (alert lifecycle) and seed_inventory (demo data).
