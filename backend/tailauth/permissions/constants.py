from enum import Enum


class Permission(str, Enum):
    # Team management
    INVITE_TEAM_MEMBERS = "invite_team_members"
    REMOVE_TEAM_MEMBERS = "remove_team_members"
    CHANGE_TEAM_ROLES = "change_team_roles"
    VIEW_TEAM_MEMBERS = "view_team_members"

    # Project management
    CREATE_PROJECTS = "create_projects"
    EDIT_ALL_PROJECTS = "edit_all_projects"
    DELETE_ALL_PROJECTS = "delete_all_projects"
    VIEW_ALL_PROJECTS = "view_all_projects"
    EDIT_ASSIGNED_PROJECTS = "edit_assigned_projects"
    VIEW_ASSIGNED_PROJECTS = "view_assigned_projects"

    # Task management
    CREATE_TASKS = "create_tasks"
    EDIT_ALL_TASKS = "edit_all_tasks"
    DELETE_ALL_TASKS = "delete_all_tasks"
    ASSIGN_TASKS = "assign_tasks"
    VIEW_ALL_TASKS = "view_all_tasks"
    EDIT_ASSIGNED_TASKS = "edit_assigned_tasks"
    VIEW_ASSIGNED_TASKS = "view_assigned_tasks"

    # Account & billing
    MANAGE_BILLING = "manage_billing"
    MANAGE_ACCOUNT_SETTINGS = "manage_account_settings"

    # Reports
    VIEW_ALL_REPORTS = "view_all_reports"
    VIEW_ASSIGNED_REPORTS = "view_assigned_reports"
