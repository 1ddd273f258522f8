"""KRS planner: pick one clash-free section per course under scheduling rules."""
