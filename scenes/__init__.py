"""scenes — pygame views over the simulation World."""
