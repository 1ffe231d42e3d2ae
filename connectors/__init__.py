"""Shop API connectors, credential storage and the demo transport."""
