"""Payment milestone schedule editor engine."""
