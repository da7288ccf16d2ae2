"""jql-to-plan: Jira JQL results -> OmniPlan project plans."""
