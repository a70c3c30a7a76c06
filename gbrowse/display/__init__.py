"""Track labelling and layout decisions."""
