"""
Spreadsheet import and reconciliation.

Pipeline, leaves first:

    headers      raw header text -> normalized key -> destination field
    rows         blank detection, name defaulting, flag coercion
    spheres      free-text / checkbox sphere answers -> Sphere ids
    matching     existing-registrant lookup and typed change-sets
    orchestrator per-row driver producing an ImportResult
    reconcile    read-only comparisons between a sheet and the store
"""
