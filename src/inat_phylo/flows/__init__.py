"""
Prefect flows for the analysis pipeline.

Flows:
- pipeline: observations -> name resolution -> induced subtree -> circular tree figure

Usage (local):
    inat-phylo run --user-id <login>
    python -m inat_phylo.flows.pipeline <login>

Usage (Prefect):
    prefect server start  # Optional, for dashboard
    inat-phylo run --project-id <slug>
"""
