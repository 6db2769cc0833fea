"""FPL Scout: player derivation, filtering and recommendation engine."""
