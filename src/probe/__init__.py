"""InfluxDB query probe for Sensu."""
