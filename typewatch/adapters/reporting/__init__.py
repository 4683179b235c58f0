"""Result reporting adapters."""
