"""C-linkage wrapper emitters."""
