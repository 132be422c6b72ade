"""系统常量定义（进程级只读配置）"""

import re
from types import MappingProxyType
from typing import Mapping, NamedTuple, Pattern, Set, Tuple

# 列分类（顺序即优先级，先匹配者胜出）
CATEGORY_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("financial", re.compile(
        r"סכום|פרמיה|עמלה|תשלום|מחיר|עלות|הכנסה|הוצאה|amount|price|cost|total|sum|fee|commission",
        re.IGNORECASE)),
    ("dates", re.compile(
        r"תאריך|מועד|יום|חודש|שנה|date|created|updated|time|timestamp|_at$",
        re.IGNORECASE)),
    ("people", re.compile(
        r"שם|איש_קשר|מטפל|סוכן|לקוח|עובד|נציג|name|user|agent|employee|contact|customer",
        re.IGNORECASE)),
    ("status", re.compile(
        r"סטטוס|מצב|שלב|status|state|stage|phase|type$",
        re.IGNORECASE)),
    ("companies", re.compile(
        r"חברה|יצרן|ספק|company|vendor|supplier|organization|org",
        re.IGNORECASE)),
    ("contact", re.compile(
        r"טלפון|מייל|נייד|כתובת|phone|email|mobile|address|tel",
        re.IGNORECASE)),
    ("identifiers", re.compile(
        r"מספר|מזהה|ת\.ז\.|תעודת_זהות|id$|_id$|number|code|uuid",
        re.IGNORECASE)),
    ("system", re.compile(
        r"^id$|^uuid$|created_at|updated_at|deleted_at|_by$",
        re.IGNORECASE)),
)

DEFAULT_CATEGORY = "other"

ALL_CATEGORIES: Tuple[str, ...] = tuple(c for c, _ in CATEGORY_PATTERNS) + (DEFAULT_CATEGORY,)

# 推荐评分权重（产品调优值，保持不变）
CATEGORY_WEIGHTS: Mapping[str, int] = MappingProxyType({
    "financial": 25,
    "status": 20,
    "people": 18,
    "dates": 15,
    "companies": 15,
    "contact": 12,
    "identifiers": 10,
    "other": 5,
    "system": 0,
})
NON_SYSTEM_BONUS = 20
COMPLETENESS_FACTOR = 0.3
ENUM_BONUS = 10
NUMBER_BONUS = 15
HIGH_CARDINALITY_THRESHOLD = 1000
HIGH_CARDINALITY_PENALTY = 10
RECOMMENDATION_THRESHOLD = 50

# 类型检测
TYPE_MATCH_RATIO = 0.8
ENUM_MAX_UNIQUE = 20
ENUM_MAX_UNIQUE_RATIO = 0.3
DISTRIBUTION_MAX_UNIQUE = 50
MAX_SAMPLE_VALUES = 5
BOOLEAN_LIKE_STRINGS: Set[str] = {"true", "false", "0", "1"}
NUMERIC_STRIP_PATTERN = re.compile(r"[,₪$€%\s]")
DATE_PREFIX_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}|^\d{2}/\d{2}/\d{4}|^\d{2}\.\d{2}\.\d{4}")
DAY_FIRST_DATE_PATTERN = re.compile(r"^(\d{1,2})[/.](\d{1,2})[/.](\d{2,4})")

# 数据行中嵌套载荷的字段名
PAYLOAD_FIELD = "raw_data"
ID_FIELD = "id"


class LegacyField(NamedTuple):
    """旧版位置数组中的字段定义"""
    name: str
    index: int
    kind: str = "text"  # text / number / date


# 旧版导入格式：数组下标 → 字段名（按版本固定）
LEGACY_LAYOUTS: Mapping[str, Tuple[LegacyField, ...]] = MappingProxyType({
    "v1": (
        LegacyField("מספר_תהליך", 1),
        LegacyField("סוג_תהליך", 4),
        LegacyField("סטטוס", 5),
        LegacyField("מטפל", 9),
        LegacyField("לקוח", 25),
        LegacyField("מזהה_לקוח", 28),
        LegacyField("סלולרי_לקוח", 34),
        LegacyField("סוג_מוצר_קיים", 36),
        LegacyField("יצרן_קיים", 37),
        LegacyField("מספר_חשבון_פוליסה_קיים", 45),
        LegacyField("סהכ_צבירה_צפויה_מניוד", 51, "number"),
        LegacyField("סוג_מוצר_חדש", 56),
        LegacyField("יצרן_חדש", 57),
        LegacyField("מספר_חשבון_פוליסה_חדש", 66),
        LegacyField("תאריך_פתיחת_תהליך", 110, "date"),
        LegacyField("תאריך_העברת_מסמכים_ליצרן", 111, "date"),
        LegacyField("פרמיה_צפויה", 118, "number"),
        LegacyField("מספר_סוכן_רשום", 132),
        LegacyField("מפקח", 136),
    ),
    "v2": (
        LegacyField("מספר_תהליך", 1),
        LegacyField("סוג_תהליך", 4),
        LegacyField("סטטוס", 5),
        LegacyField("מטפל", 9),
        LegacyField("לקוח", 25),
        LegacyField("מזהה_לקוח", 28),
        LegacyField("סלולרי_לקוח", 34),
        LegacyField("סוג_מוצר_קיים", 35),
        LegacyField("יצרן_קיים", 36),
        LegacyField("מספר_חשבון_פוליסה_קיים", 44),
        LegacyField("סהכ_צבירה_צפויה_מניוד", 51, "number"),
        LegacyField("סוג_מוצר_חדש", 56),
        LegacyField("יצרן_חדש", 57),
        LegacyField("מספר_חשבון_פוליסה_חדש", 65),
        LegacyField("הפקדה_חד_פעמית_צפויה", 103, "number"),
        LegacyField("תאריך_פתיחת_תהליך", 108, "date"),
        LegacyField("תאריך_העברת_מסמכים_ליצרן", 111, "date"),
        LegacyField("פרמיה_צפויה", 119, "number"),
        LegacyField("מספר_סוכן_רשום", 141),
        LegacyField("מפקח", 145),
    ),
})
DEFAULT_LEGACY_LAYOUT = "v1"


class ViewSchema(NamedTuple):
    """固定结构视图"""
    columns: Tuple[str, ...]
    sort_key: str
    value_field: str  # 排名依据（佣金）
    secondary_field: str  # premium 或 accumulation_balance


# 已知的固定结构视图
VIEW_SCHEMAS: Mapping[str, ViewSchema] = MappingProxyType({
    "nifraim": ViewSchema(
        columns=("provider", "processing_month", "branch", "agent_name", "premium", "comission"),
        sort_key="processing_month",
        value_field="comission",
        secondary_field="premium",
    ),
    "gemel": ViewSchema(
        columns=("provider", "processing_month", "branch", "agent_name", "accumulation_balance", "comission"),
        sort_key="processing_month",
        value_field="comission",
        secondary_field="accumulation_balance",
    ),
})

# 视图报表中展示的主要险种分支
MAIN_BRANCHES: Tuple[str, ...] = ("בריאות", "פנסיה", "גמל", "חיים")

# 临时表默认排序键（不保证存在，使用前需确认）
DEFAULT_SORT_KEY = "created_at"

# 过滤操作符白名单
ALLOWED_FILTER_OPERATORS: Set[str] = {
    "=", "!=", ">", ">=", "<", "<=",
    "in", "between", "contains", "is_null"
}

# 排名窗口
TOP_AGENTS_LIMIT = 30
RANKED_GROUPS_LIMIT = 20
PREVIEW_ROWS = 50
SUMMARY_PREVIEW_ROWS = 100
FILTER_OPTION_COLUMNS = 10
FILTER_OPTION_MAX_UNIQUE = 100
AGENT_OPTIONS_LIMIT = 100

# 模板默认值
TEMPLATE_CARD_LIMIT = 4
TEMPLATE_FILTER_LIMIT = 5
TEMPLATE_CHART_LIMIT = 2
TEMPLATE_PAGE_SIZE = 50
CARD_ICONS: Tuple[str, ...] = ("💰", "📊", "📈", "💵")
CARD_COLORS: Tuple[str, ...] = ("blue", "green", "purple", "amber")
CHART_TYPES: Tuple[str, ...] = ("pie", "bar")
