"""Pure diff layer: content model, diffing, selections, splitting and applying."""
