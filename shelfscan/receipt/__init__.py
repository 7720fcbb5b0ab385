"""Pure receipt text understanding: detection, extraction, classification, enhancement."""
