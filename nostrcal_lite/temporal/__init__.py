"""Timezone resolution and wall-clock conversion for nostrcal_lite."""
