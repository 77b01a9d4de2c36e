from typing import override

from django.contrib import admin, messages

from core.elections_errors import ElectionError
from core.elections_registry import set_visibility_release, transition_election_status
from core.models import (
    AuditLogEntry,
    Ballot,
    Candidate,
    Election,
    ParticipationRecord,
    Position,
    ResultRelease,
    RosterVoter,
)
from core.permissions import can_manage


class ReadOnlyAdmin(admin.ModelAdmin):
    @override
    def has_add_permission(self, request):
        return False

    @override
    def has_change_permission(self, request, obj=None):
        return False

    @override
    def has_delete_permission(self, request, obj=None):
        return False


class ManageActionsMixin:
    """Hide lifecycle actions from staff without the manage_election permission."""

    def get_actions(self, request):
        actions = super().get_actions(request)
        if not can_manage(request.user):
            for name in self.actions:
                actions.pop(name, None)
        return actions


class StructureLockMixin:
    """Freeze ballot structure once ballots exist or the election has ended.

    Inlines receive the parent object, so ``obj`` is the election or the
    position the rows belong to.
    """

    def structure_locked(self, obj) -> bool:
        if obj is None:
            return False
        election = obj if isinstance(obj, Election) else obj.election
        return election.structure_locked()

    def has_add_permission(self, request, obj=None):
        return not self.structure_locked(obj) and super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        return not self.structure_locked(obj) and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return not self.structure_locked(obj) and super().has_delete_permission(request, obj)


class PositionInline(StructureLockMixin, admin.TabularInline):
    model = Position
    extra = 0
    fields = ("name", "order", "max_votes")
    show_change_link = True


class CandidateInline(StructureLockMixin, admin.TabularInline):
    model = Candidate
    extra = 0
    fields = ("sequence", "name", "affiliation")


def _transition_selected(modeladmin, request, queryset, *, target_status: str) -> None:
    changed = 0
    for election in queryset:
        try:
            transition_election_status(
                election_id=election.id,
                target_status=target_status,
                actor=request.user.get_username(),
            )
        except ElectionError as exc:
            modeladmin.message_user(request, f"{election}: {exc}", level=messages.ERROR)
        else:
            changed += 1
    if changed:
        modeladmin.message_user(request, f"Moved {changed} election(s) to {target_status}.", level=messages.SUCCESS)


@admin.register(Election)
class ElectionAdmin(ManageActionsMixin, admin.ModelAdmin):
    list_display = ("title", "year", "scope", "department", "status", "scheduled_date", "ballot_open_time", "ballot_close_time")
    list_filter = ("status", "scope", "year")
    search_fields = ("title", "department")
    readonly_fields = ("status", "created_at", "updated_at")
    inlines = (PositionInline,)
    actions = ("activate_elections", "complete_elections", "cancel_elections")
    structure_fields = ("year", "scope", "department", "scheduled_date", "ballot_open_time", "ballot_close_time")

    @override
    def get_readonly_fields(self, request, obj=None):
        readonly = tuple(super().get_readonly_fields(request, obj))
        if obj is not None and obj.structure_locked():
            readonly += self.structure_fields
        return readonly

    @admin.action(description="Open ballots (upcoming → active)")
    def activate_elections(self, request, queryset):
        _transition_selected(self, request, queryset, target_status=Election.Status.active)

    @admin.action(description="Complete (active → completed)")
    def complete_elections(self, request, queryset):
        _transition_selected(self, request, queryset, target_status=Election.Status.completed)

    @admin.action(description="Cancel election")
    def cancel_elections(self, request, queryset):
        _transition_selected(self, request, queryset, target_status=Election.Status.cancelled)


@admin.register(Position)
class PositionAdmin(ManageActionsMixin, admin.ModelAdmin):
    list_display = ("name", "election", "order", "max_votes", "results_released")
    list_filter = ("election",)
    inlines = (CandidateInline,)
    actions = ("release_results", "hide_results")

    @override
    def get_readonly_fields(self, request, obj=None):
        readonly = tuple(super().get_readonly_fields(request, obj))
        if obj is not None and obj.election.structure_locked():
            readonly += ("election", "name", "order", "max_votes")
        return readonly

    @override
    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.election.structure_locked():
            return False
        return super().has_delete_permission(request, obj)

    @admin.display(boolean=True, description="Released")
    def results_released(self, obj: Position) -> bool:
        release = ResultRelease.objects.filter(position=obj).first()
        return bool(release and release.released)

    def _set_release(self, request, queryset, *, released: bool) -> None:
        for position in queryset:
            set_visibility_release(
                election_id=position.election_id,
                position_id=position.id,
                released=released,
                actor=request.user.get_username(),
            )
        self.message_user(request, f"Updated result visibility for {queryset.count()} position(s).")

    @admin.action(description="Reveal candidate names in results")
    def release_results(self, request, queryset):
        self._set_release(request, queryset, released=True)

    @admin.action(description="Hide candidate names in results")
    def hide_results(self, request, queryset):
        self._set_release(request, queryset, released=False)


@admin.register(Ballot)
class BallotAdmin(ReadOnlyAdmin):
    list_display = ("ballot_token", "election", "voter_scope", "submitted_at")
    list_filter = ("election",)


@admin.register(ParticipationRecord)
class ParticipationRecordAdmin(ReadOnlyAdmin):
    list_display = ("voter_id", "election", "voter_scope", "status", "source", "confirmed_at", "voted_at")
    list_filter = ("election", "status", "source")
    search_fields = ("voter_id",)


@admin.register(RosterVoter)
class RosterVoterAdmin(admin.ModelAdmin):
    list_display = ("voter_id", "department", "is_eligible", "updated_at")
    list_filter = ("is_eligible", "department")
    search_fields = ("voter_id",)


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(ReadOnlyAdmin):
    list_display = ("timestamp", "election", "event_type", "is_public")
    list_filter = ("event_type", "is_public")
