"""Reference graph accessors and labels."""
