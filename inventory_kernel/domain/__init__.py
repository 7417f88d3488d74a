"""Pure domain layer: values, DTOs, status rules, adjustment policy, clock."""
