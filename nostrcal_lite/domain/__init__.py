"""Domain orchestration for nostrcal_lite."""
