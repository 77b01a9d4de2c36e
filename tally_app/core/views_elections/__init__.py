"""Election JSON views.

All public view functions are re-exported here so that ``core.urls`` can
reference ``views_elections.<view_name>``.
"""

from core.views_elections.detail import (
    election_detail,
    election_position_results,
    election_results,
    election_turnout,
)
from core.views_elections.lifecycle import (
    election_participants_list,
    election_position_release,
    election_transition,
)
from core.views_elections.vote import (
    election_ballot_submit,
    election_participation,
    election_participation_withdraw,
    voter_participation_history,
)

__all__ = [
    "election_ballot_submit",
    "election_detail",
    "election_participation",
    "election_participants_list",
    "election_participation_withdraw",
    "election_position_release",
    "election_position_results",
    "election_results",
    "election_transition",
    "election_turnout",
    "voter_participation_history",
]
