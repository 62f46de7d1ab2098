"""Order lifecycle: status enums, state machine, commission and service."""
