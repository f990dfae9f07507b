"""Source table reading (CSV / xlsx)."""
