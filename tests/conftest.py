import pytest

from wup_engine.dsl.wup_parser import parse_wup

# statement indices:
#  0 ELM   1 QS   2 QS   3 BOY   4 PLI1   5 NR   6 NR
#  7 PAF   8 PP   9 PP  10 KB   11 PP    12 MP
WALL_WUP = """ELM 2000,2500,160,1;
QS 2500,60,0,0,0,0;
QS 2500,60,0,1000,0,0;
BOY 30,80,20,-40;
PLI1 1000,2500,15,0,0,1,OSB;
NR 10,10,10,2400,150;
NR 990,10,990,2400,150;
PAF 1,1,1;
PP 200,200,-15,1101,0;
PP 400,200,-15,1101,0;
KB 400,400,100,cc,-15,1101,0;
PP 200,400,-15,1101,0;
MP 700,700,25,-10,0;
"""

STUD_DRILL_WUP = "ELM 1200,2400,90,1; QS 2400,38,0,100,0,0; BOY 19,45,20,-20;"

BOWTIE_WUP = """ELM 1000,1000;
QS 1000,40,0,0,0,0;
PAF 1,1,1;
PP 100,100;
PP 300,300;
PP 300,100;
PP 100,300;
"""


@pytest.fixture
def wall_text():
    return WALL_WUP


@pytest.fixture
def wall_model():
    return parse_wup(WALL_WUP)


@pytest.fixture
def wall_file(tmp_path):
    p = tmp_path / "wall.wup"
    p.write_text(WALL_WUP, encoding="utf-8")
    return p
