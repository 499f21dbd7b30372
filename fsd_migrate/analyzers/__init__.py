"""Project analysis: stack detection and migration complexity scoring."""
