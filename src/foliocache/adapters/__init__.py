"""Framework adapters for foliocache."""
