"""HTTP service exposing the flow catalog and PDF report export."""
