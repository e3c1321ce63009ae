"""MS Portfolio BS: portfolio lookup and seeding over MongoDB."""
