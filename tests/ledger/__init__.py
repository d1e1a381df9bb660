"""
Device Ledger Tests

Sections:
    Registration      - uniqueness, self-identifying devices, silent by default
    State changes     - ownership gate, events, unknown devices
    Accounting        - per-owner counters and the ordinal index
    Storage           - atomic batches, isolated handles
    Invariants        - ownership index consistency checks
    Dispatch & replay - submit() results, audit log, deterministic replay
    Properties        - hypothesis-driven call sequences

Acceptance rule:
    Every state change must be explained by an accepted audit record
    and a StateChange event.
"""
