"""Schedule domain: allocation items, edit buffer and reconciliation planning."""
