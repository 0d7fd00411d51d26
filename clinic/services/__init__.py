"""Business services layered over the repositories."""
