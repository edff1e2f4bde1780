# core/constants.py

# --- Activity Verbs (Standard Registry) ---

# Team lifecycle
ACTIVITY_TEAM_CREATED = "team.created"
ACTIVITY_TEAM_RENAMED = "team.renamed"
ACTIVITY_TEAM_DELETED = "team.deleted"

# Invitations
ACTIVITY_TEAM_INVITED = "team.invited"
ACTIVITY_TEAM_INVITE_REVOKED = "team.invite_revoked"
ACTIVITY_TEAM_INVITE_DECLINED = "team.invite_declined"

# Membership
ACTIVITY_TEAM_JOINED = "team.joined"
ACTIVITY_TEAM_LEFT = "team.left"
