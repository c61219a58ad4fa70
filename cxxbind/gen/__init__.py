"""Code generation: emitters, materializer and the builder."""
