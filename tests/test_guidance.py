import pytest

from posematch.pose.guidance import guidance_for_score, guidance_prompt
from tests.conftest import make_skeleton


def _shoulders(lx: float, rx: float, y: float = 0.3):
	return make_skeleton({11: (lx, y), 12: (rx, y)})


@pytest.mark.parametrize(
	"lx, rx, expected",
	[
		(0.40, 0.60, None),
		(0.20, 0.40, "Move left"),
		(0.60, 0.80, "Move right"),
		(0.25, 0.75, "Back up"),
		(0.45, 0.55, "Come closer"),
	],
)
def test_prompts(lx, rx, expected):
	assert guidance_prompt(_shoulders(lx, rx)) == expected


def test_centering_wins_over_distance():
	# Off-centre and far too close at the same time.
	assert guidance_prompt(_shoulders(0.05, 0.55)) == "Move left"
	assert guidance_prompt(_shoulders(0.62, 0.98)) == "Move right"


def test_no_prompt_without_shoulders():
	assert guidance_prompt(None) is None
	assert guidance_prompt(make_skeleton()[:11]) is None


def test_prompt_only_while_score_is_low():
	live = _shoulders(0.20, 0.40)
	assert guidance_for_score(live, 49) == "Move left"
	assert guidance_for_score(live, 50) is None
	assert guidance_for_score(None, 10) is None
