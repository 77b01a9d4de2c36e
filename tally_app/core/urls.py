from django.urls import path

from core import views_elections

urlpatterns = [
    path("me/participation/", views_elections.voter_participation_history, name="voter-participation-history"),
    path("elections/<int:election_id>/", views_elections.election_detail, name="election-detail"),
    path(
        "elections/<int:election_id>/participation/",
        views_elections.election_participation,
        name="election-participation",
    ),
    path(
        "elections/<int:election_id>/participation/withdraw/",
        views_elections.election_participation_withdraw,
        name="election-participation-withdraw",
    ),
    path(
        "elections/<int:election_id>/participants/",
        views_elections.election_participants_list,
        name="election-participants",
    ),
    path("elections/<int:election_id>/ballot/", views_elections.election_ballot_submit, name="election-ballot-submit"),
    path("elections/<int:election_id>/results/", views_elections.election_results, name="election-results"),
    path(
        "elections/<int:election_id>/positions/<int:position_id>/results/",
        views_elections.election_position_results,
        name="election-position-results",
    ),
    path("elections/<int:election_id>/turnout/", views_elections.election_turnout, name="election-turnout"),
    path("elections/<int:election_id>/transition/", views_elections.election_transition, name="election-transition"),
    path(
        "elections/<int:election_id>/positions/<int:position_id>/release/",
        views_elections.election_position_release,
        name="election-position-release",
    ),
]
