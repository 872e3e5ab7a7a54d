from .constants import Permission as P
from .roles import Role

ROLE_PERMISSIONS: dict[Role, frozenset[P]] = {
    Role.OWNER: frozenset({
        P.INVITE_TEAM_MEMBERS,
        P.REMOVE_TEAM_MEMBERS,
        P.CHANGE_TEAM_ROLES,
        P.VIEW_TEAM_MEMBERS,
        P.CREATE_PROJECTS,
        P.EDIT_ALL_PROJECTS,
        P.DELETE_ALL_PROJECTS,
        P.VIEW_ALL_PROJECTS,
        P.CREATE_TASKS,
        P.EDIT_ALL_TASKS,
        P.DELETE_ALL_TASKS,
        P.ASSIGN_TASKS,
        P.VIEW_ALL_TASKS,
        P.MANAGE_BILLING,
        P.MANAGE_ACCOUNT_SETTINGS,
        P.VIEW_ALL_REPORTS,
    }),
    Role.ADMIN: frozenset({
        # Team management (reach limited by can_manage_user)
        P.INVITE_TEAM_MEMBERS,
        P.REMOVE_TEAM_MEMBERS,
        P.CHANGE_TEAM_ROLES,
        P.VIEW_TEAM_MEMBERS,
        P.CREATE_PROJECTS,
        P.EDIT_ALL_PROJECTS,
        P.DELETE_ALL_PROJECTS,
        P.VIEW_ALL_PROJECTS,
        P.CREATE_TASKS,
        P.EDIT_ALL_TASKS,
        P.DELETE_ALL_TASKS,
        P.ASSIGN_TASKS,
        P.VIEW_ALL_TASKS,
        P.VIEW_ALL_REPORTS,
        # no billing or account settings
    }),
    Role.MEMBER: frozenset({
        P.VIEW_ASSIGNED_PROJECTS,
        P.EDIT_ASSIGNED_PROJECTS,
        P.VIEW_ASSIGNED_TASKS,
        P.EDIT_ASSIGNED_TASKS,
        P.VIEW_ASSIGNED_REPORTS,
    }),
}
