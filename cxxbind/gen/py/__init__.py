"""Host binding layer emitters."""
