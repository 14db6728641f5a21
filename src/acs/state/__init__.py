"""Tenancy state — JSON records under a single local root.

Layout:
    ~/.acs/                               # or $ACS_HOME, or --home
    ├── manifest.json                     # schema version, org id
    ├── context.json                      # current environment/project
    ├── auth/
    │   ├── organization.json
    │   └── credentials.json              # 0600, API key
    └── environments/
        ├── development/
        │   ├── environment.json          # policy + machine profile
        │   └── projects/<project-id>/
        │       ├── project.json
        │       ├── instances/<rtm_id>.json
        │       └── runs/<run_id>.json
        └── production/                   # mirrors development
"""
