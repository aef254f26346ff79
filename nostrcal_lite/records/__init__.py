"""Record models, kind policy and replaceable-record resolution."""
