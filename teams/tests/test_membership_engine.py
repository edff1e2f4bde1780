import random

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from core.constants import ACTIVITY_TEAM_CREATED, ACTIVITY_TEAM_JOINED
from core.exceptions import Conflict, DomainError, Forbidden, InvalidArgument, NotFound
from core.models import DomainActivity
from events.models import Event
from teams.models import Team, TeamSeat
from teams.queries import TeamQueryService
from teams.services import MembershipEngine


User = get_user_model()


class MembershipEngineTests(TestCase):
    def setUp(self):
        self.engine = MembershipEngine()

        # ---- Users ----
        self.organizer = User.objects.create_user(username="organizer", password="pass1234", role="organizer")
        self.leader = User.objects.create_user(username="leader", password="pass1234")
        self.alice = User.objects.create_user(username="alice", password="pass1234")
        self.bob = User.objects.create_user(username="bob", password="pass1234")
        self.carol = User.objects.create_user(username="carol", password="pass1234")

        # ---- Events ----
        self.event = Event.objects.create(
            organizer=self.organizer,
            title="Hack Night",
            team_size_min=1,
            team_size_max=3,
        )
        self.other_event = Event.objects.create(
            organizer=self.organizer,
            title="Ideathon",
            team_size_min=1,
            team_size_max=3,
        )

    def make_team(self, leader=None, event=None, name="Rockets"):
        leader = leader or self.leader
        event = event or self.event
        return self.engine.create_team(leader.id, event.id, name)

    def assertRoster(self, team, members, invites=()):
        team = Team.objects.with_roster().get(pk=team.pk)
        self.assertEqual(team.member_ids, [u.id for u in members])
        self.assertEqual(team.invite_ids, [u.id for u in invites])

    # -------------------------
    # create_team
    # -------------------------
    def test_create_team_makes_actor_leader_and_only_member(self):
        team = self.make_team()

        self.assertEqual(team.leader_id, self.leader.id)
        self.assertEqual(team.event_id, self.event.id)
        self.assertEqual(team.name, "Rockets")
        self.assertEqual(team.member_ids, [self.leader.id])
        self.assertEqual(team.invite_ids, [])

    def test_create_team_strips_name(self):
        team = self.make_team(name="  Rockets  ")
        self.assertEqual(team.name, "Rockets")

    def test_create_team_rejects_invalid_names(self):
        for name in ("", "   ", "x", "y" * 101, None):
            with self.subTest(name=name):
                with self.assertRaises(InvalidArgument):
                    self.make_team(name=name)
        self.assertFalse(Team.objects.exists())

    @override_settings(TEAM_NAME_MIN_LENGTH=5)
    def test_create_team_uses_configured_name_length(self):
        with self.assertRaises(InvalidArgument):
            self.make_team(name="Abcd")

    @override_settings(TEAM_NAME_MAX_LENGTH=500)
    def test_configured_max_length_is_capped_by_name_column(self):
        with self.assertRaises(InvalidArgument):
            self.make_team(name="z" * 150)

        team = self.make_team(name="z" * 100)
        self.assertEqual(len(team.name), 100)

    def test_create_team_for_missing_event(self):
        with self.assertRaises(NotFound):
            self.engine.create_team(self.leader.id, 999999, "Rockets")

    def test_create_second_team_for_same_event_conflicts(self):
        self.make_team()

        with self.assertRaises(Conflict):
            self.make_team(name="Other")
        self.assertEqual(Team.objects.filter(event=self.event).count(), 1)

    def test_member_cannot_create_team_for_same_event(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Conflict):
            self.make_team(leader=self.alice, name="Breakaway")

    def test_pending_invitee_cannot_create_team_for_same_event(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        with self.assertRaises(Conflict):
            self.make_team(leader=self.alice, name="Breakaway")

        self.engine.decline_invite(self.alice.id, team.pk)
        created = self.make_team(leader=self.alice, name="Breakaway")
        self.assertEqual(created.leader_id, self.alice.id)

    def test_same_user_can_lead_teams_in_different_events(self):
        self.make_team()
        other = self.make_team(event=self.other_event)
        self.assertEqual(other.event_id, self.other_event.id)

    def test_create_team_logs_activity(self):
        team = self.make_team()
        activity = DomainActivity.objects.get(verb=ACTIVITY_TEAM_CREATED)
        self.assertEqual(activity.actor_id, self.leader.id)
        self.assertEqual(activity.object_id, team.pk)
        self.assertEqual(activity.event_id, self.event.id)

    # -------------------------
    # invite
    # -------------------------
    def test_leader_invites_user(self):
        team = self.make_team()
        version = team.version

        team = self.engine.invite(self.leader.id, team.pk, self.alice.id)

        self.assertEqual(team.invite_ids, [self.alice.id])
        self.assertEqual(team.member_ids, [self.leader.id])
        self.assertEqual(team.version, version + 1)
        self.assertEqual(team.invite_seats[0].invited_by_id, self.leader.id)

    def test_non_leader_cannot_invite(self):
        team = self.make_team()
        with self.assertRaises(Forbidden):
            self.engine.invite(self.alice.id, team.pk, self.bob.id)

    def test_member_cannot_invite(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Forbidden):
            self.engine.invite(self.alice.id, team.pk, self.bob.id)

    def test_invite_missing_team_or_user(self):
        team = self.make_team()
        with self.assertRaises(NotFound):
            self.engine.invite(self.leader.id, 999999, self.alice.id)
        with self.assertRaises(NotFound):
            self.engine.invite(self.leader.id, team.pk, 999999)

    def test_invite_existing_member_conflicts(self):
        team = self.make_team()
        with self.assertRaises(Conflict) as ctx:
            self.engine.invite(self.leader.id, team.pk, self.leader.id)
        self.assertIn("already a team member", str(ctx.exception.detail))

    def test_duplicate_invite_conflicts(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        with self.assertRaises(Conflict) as ctx:
            self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.assertIn("pending invite", str(ctx.exception.detail))
        self.assertRoster(team, [self.leader], [self.alice])

    def test_invite_user_in_other_team_for_event_conflicts(self):
        team = self.make_team()
        self.make_team(leader=self.bob, name="Comets")

        with self.assertRaises(Conflict) as ctx:
            self.engine.invite(self.leader.id, team.pk, self.bob.id)
        self.assertIn("another team", str(ctx.exception.detail))

    def test_invite_user_invited_elsewhere_for_event_conflicts(self):
        team = self.make_team()
        comets = self.make_team(leader=self.bob, name="Comets")
        self.engine.invite(self.bob.id, comets.pk, self.alice.id)

        with self.assertRaises(Conflict):
            self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.assertRoster(team, [self.leader])

    def test_invite_user_in_team_for_different_event_is_allowed(self):
        team = self.make_team()
        self.make_team(leader=self.alice, event=self.other_event)

        team = self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.assertEqual(team.invite_ids, [self.alice.id])

    def test_invite_rejected_when_team_full(self):
        self.event.team_size_max = 2
        self.event.save()
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Conflict) as ctx:
            self.engine.invite(self.leader.id, team.pk, self.bob.id)
        self.assertIn("full", str(ctx.exception.detail))

    def test_invite_rereads_bounds_after_event_shrinks(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        Event.objects.filter(pk=self.event.pk).update(team_size_max=2)

        with self.assertRaises(Conflict):
            self.engine.invite(self.leader.id, team.pk, self.bob.id)

    def test_pending_invites_do_not_count_toward_capacity(self):
        self.event.team_size_max = 2
        self.event.save()
        team = self.make_team()

        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        team = self.engine.invite(self.leader.id, team.pk, self.bob.id)

        self.assertEqual(team.invite_ids, [self.alice.id, self.bob.id])

    # -------------------------
    # revoke_invite
    # -------------------------
    def test_leader_revokes_invite(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        team = self.engine.revoke_invite(self.leader.id, team.pk, self.alice.id)

        self.assertEqual(team.invite_ids, [])
        with self.assertRaises(Conflict):
            self.engine.accept_invite(self.alice.id, team.pk)

    def test_revoke_requires_leader_and_pending_invite(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        with self.assertRaises(Forbidden):
            self.engine.revoke_invite(self.alice.id, team.pk, self.alice.id)
        with self.assertRaises(Conflict):
            self.engine.revoke_invite(self.leader.id, team.pk, self.bob.id)
        with self.assertRaises(Conflict):
            self.engine.revoke_invite(self.leader.id, team.pk, self.leader.id)

    # -------------------------
    # accept_invite
    # -------------------------
    def test_accept_moves_invitee_to_members(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        team = self.engine.accept_invite(self.alice.id, team.pk)

        self.assertEqual(team.member_ids, [self.leader.id, self.alice.id])
        self.assertEqual(team.invite_ids, [])
        self.assertIsNotNone(team.member_seats[1].joined_at)
        self.assertTrue(DomainActivity.objects.filter(verb=ACTIVITY_TEAM_JOINED, actor=self.alice).exists())

    def test_accept_without_invite_conflicts(self):
        team = self.make_team()
        with self.assertRaises(Conflict):
            self.engine.accept_invite(self.alice.id, team.pk)

    def test_accept_twice_conflicts(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Conflict):
            self.engine.accept_invite(self.alice.id, team.pk)
        self.assertRoster(team, [self.leader, self.alice])

    def test_accept_rejected_when_team_filled_after_invite(self):
        self.event.team_size_max = 2
        self.event.save()
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.invite(self.leader.id, team.pk, self.bob.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Conflict):
            self.engine.accept_invite(self.bob.id, team.pk)

        # The invite stays until the invitee declines or the leader revokes it
        self.assertRoster(team, [self.leader, self.alice], [self.bob])

    def test_accept_rejected_when_event_bounds_shrink(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        Event.objects.filter(pk=self.event.pk).update(team_size_max=1)

        with self.assertRaises(Conflict):
            self.engine.accept_invite(self.alice.id, team.pk)
        self.assertRoster(team, [self.leader], [self.alice])

    # -------------------------
    # decline_invite
    # -------------------------
    def test_decline_removes_invite_only(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        team = self.engine.decline_invite(self.alice.id, team.pk)

        self.assertEqual(team.invite_ids, [])
        self.assertEqual(team.member_ids, [self.leader.id])

    def test_decline_twice_conflicts(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.decline_invite(self.alice.id, team.pk)

        with self.assertRaises(Conflict):
            self.engine.decline_invite(self.alice.id, team.pk)

    def test_member_cannot_decline(self):
        team = self.make_team()
        with self.assertRaises(Conflict):
            self.engine.decline_invite(self.leader.id, team.pk)

    # -------------------------
    # leave
    # -------------------------
    def test_member_leaves(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        team = self.engine.leave(self.alice.id, team.pk)

        self.assertEqual(team.member_ids, [self.leader.id])
        # Free to join another team for the event afterwards
        comets = self.make_team(leader=self.bob, name="Comets")
        self.engine.invite(self.bob.id, comets.pk, self.alice.id)

    def test_leader_cannot_leave(self):
        team = self.make_team()
        with self.assertRaises(Conflict) as ctx:
            self.engine.leave(self.leader.id, team.pk)
        self.assertIn("leader", str(ctx.exception.detail))
        self.assertRoster(team, [self.leader])

    def test_non_member_and_invitee_cannot_leave(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        with self.assertRaises(Conflict):
            self.engine.leave(self.alice.id, team.pk)
        with self.assertRaises(Conflict):
            self.engine.leave(self.bob.id, team.pk)

    # -------------------------
    # rename_team
    # -------------------------
    def test_leader_renames_team(self):
        team = self.make_team()
        team = self.engine.rename_team(self.leader.id, team.pk, " Comets ")
        self.assertEqual(team.name, "Comets")

    def test_rename_requires_leader_and_valid_name(self):
        team = self.make_team()
        with self.assertRaises(Forbidden):
            self.engine.rename_team(self.alice.id, team.pk, "Comets")
        with self.assertRaises(InvalidArgument):
            self.engine.rename_team(self.leader.id, team.pk, " ")

    # -------------------------
    # delete_team
    # -------------------------
    def test_non_leader_cannot_delete(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.engine.accept_invite(self.alice.id, team.pk)

        with self.assertRaises(Forbidden):
            self.engine.delete_team(self.alice.id, team.pk)
        self.assertTrue(Team.objects.filter(pk=team.pk).exists())

    def test_delete_voids_pending_invites(self):
        team = self.make_team()
        self.engine.invite(self.leader.id, team.pk, self.alice.id)

        self.engine.delete_team(self.leader.id, team.pk)

        with self.assertRaises(NotFound):
            TeamQueryService().get_team(team.pk)
        with self.assertRaises(NotFound):
            self.engine.accept_invite(self.alice.id, team.pk)
        with self.assertRaises(NotFound):
            self.engine.decline_invite(self.alice.id, team.pk)
        self.assertFalse(TeamSeat.objects.filter(team_id=team.pk).exists())

        # Invitee and leader are free again for the event
        self.make_team(leader=self.alice, name="Comets")
        self.make_team(name="Rockets II")

    # -------------------------
    # Scenario
    # -------------------------
    def test_team_of_two_lifecycle(self):
        """
        max=2: create, invite, accept, then a further invite is a Conflict
        because the team is already full.
        """
        self.event.team_size_max = 2
        self.event.save()

        team = self.make_team()
        self.assertEqual(team.member_ids, [self.leader.id])

        team = self.engine.invite(self.leader.id, team.pk, self.alice.id)
        self.assertEqual(team.invite_ids, [self.alice.id])

        team = self.engine.accept_invite(self.alice.id, team.pk)
        self.assertEqual(team.member_ids, [self.leader.id, self.alice.id])
        self.assertEqual(team.invite_ids, [])

        with self.assertRaises(Conflict):
            self.engine.invite(self.leader.id, team.pk, self.bob.id)


class MembershipInvariantTests(TestCase):
    """Random operation sequences never break the membership invariants."""

    def setUp(self):
        self.engine = MembershipEngine()
        organizer = User.objects.create_user(username="organizer", password="pass1234")
        self.users = [
            User.objects.create_user(username=f"user{i}", password="pass1234")
            for i in range(8)
        ]
        self.events = [
            Event.objects.create(organizer=organizer, title="Small", team_size_max=2),
            Event.objects.create(organizer=organizer, title="Large", team_size_max=3),
        ]

    def random_step(self, rng):
        actor = rng.choice(self.users)
        teams = list(Team.objects.values_list('pk', flat=True))
        team_id = rng.choice(teams) if teams else 0
        operation = rng.choice(
            ['create', 'invite', 'invite', 'accept', 'accept', 'decline', 'leave', 'delete', 'shrink']
        )

        if operation == 'create':
            team = self.engine.create_team(actor.id, rng.choice(self.events).id, f"Team {rng.randint(1, 999)}")
            team_id = team.pk
        elif operation == 'invite':
            team = Team.objects.filter(pk=team_id).first()
            leader_id = team.leader_id if team and rng.random() < 0.8 else actor.id
            self.engine.invite(leader_id, team_id, rng.choice(self.users).id)
        elif operation == 'accept':
            self.engine.accept_invite(actor.id, team_id)
        elif operation == 'decline':
            self.engine.decline_invite(actor.id, team_id)
        elif operation == 'leave':
            self.engine.leave(actor.id, team_id)
        elif operation == 'delete':
            if rng.random() < 0.3:
                self.engine.delete_team(actor.id, team_id)
        else:
            event = rng.choice(self.events)
            Event.objects.filter(pk=event.pk).update(team_size_max=rng.randint(1, 3))
        return operation, team_id

    def assertInvariants(self):
        teams = Team.objects.with_roster()
        seen = {}
        for team in teams:
            members = set(team.member_ids)
            invites = set(team.invite_ids)
            self.assertIn(team.leader_id, members)
            self.assertFalse(members & invites)
            self.assertEqual(len(team.invite_ids), len(invites))
            for user_id in members | invites:
                key = (team.event_id, user_id)
                self.assertNotIn(key, seen, f"user {user_id} holds two seats in event {team.event_id}")
                seen[key] = team.pk

    def test_random_operation_sequences(self):
        rng = random.Random(20240617)
        # Bounds move during the run, so the size limit is checked against the
        # bounds in force when a membership was granted.
        for _ in range(400):
            before = {t.pk: t.version for t in Team.objects.all()}
            try:
                operation, team_id = self.random_step(rng)
            except DomainError:
                after = {t.pk: t.version for t in Team.objects.all()}
                self.assertEqual(before, after, "rejected operation changed state")
            else:
                if operation in ('create', 'accept'):
                    team = Team.objects.with_roster().get(pk=team_id)
                    self.assertLessEqual(team.current_size, team.event.team_size_max)
            self.assertInvariants()
