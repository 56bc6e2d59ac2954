"""Database models for local identity storage and identifier bindings."""

from sqlalchemy import Column, DateTime, Index, Integer, SmallInteger, \
    String, UniqueConstraint, text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DBUser(Base):  # type: ignore
    """
    Account table used when running without the remote service.

    +----------------+--------------+------+-----+---------+----------------+
    | Field          | Type         | Null | Key | Default | Extra          |
    +----------------+--------------+------+-----+---------+----------------+
    | uid            | int unsigned | NO   | PRI | NULL    | auto_increment |
    | username       | varchar(50)  | NO   | UNI |         |                |
    | password       | varchar(255) | NO   |     |         |                |
    | email          | varchar(255) | NO   | UNI |         |                |
    | regip          | varchar(45)  | YES  |     | NULL    |                |
    | regdate        | datetime     | YES  |     | NULL    |                |
    | phone          | varchar(11)  | YES  | MUL | NULL    |                |
    | wechat_openid  | varchar(64)  | YES  |     | NULL    |                |
    | wechat_unionid | varchar(64)  | YES  | MUL | NULL    |                |
    | qq_union_id    | varchar(64)  | YES  | MUL | NULL    |                |
    | weibo_openid   | varchar(64)  | YES  | MUL | NULL    |                |
    | nickname       | varchar(64)  | YES  |     | NULL    |                |
    | avatar         | varchar(512) | YES  |     | NULL    |                |
    | douyin_openid  | varchar(64)  | YES  |     | NULL    |                |
    | is_member      | tinyint(1)   | NO   |     | 0       |                |
    +----------------+--------------+------+-----+---------+----------------+
    """

    __tablename__ = 'uc_users'

    uid = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    regip = Column(String(45), nullable=True)
    regdate = Column(DateTime(timezone=True), nullable=True)
    phone = Column(String(11), nullable=True, index=True)
    wechat_openid = Column(String(64), nullable=True)
    wechat_unionid = Column(String(64), nullable=True, index=True)
    qq_union_id = Column(String(64), nullable=True, index=True)
    weibo_openid = Column(String(64), nullable=True, index=True)
    nickname = Column(String(64), nullable=True)
    avatar = Column(String(512), nullable=True)
    douyin_openid = Column(String(64), nullable=True)
    is_member = Column(SmallInteger, nullable=False, default=0,
                       server_default=text("'0'"))

    PUBLIC_FIELDS = ['uid', 'username', 'email', 'regip', 'regdate', 'phone',
                     'wechat_openid', 'wechat_unionid', 'qq_union_id',
                     'weibo_openid', 'nickname', 'avatar', 'douyin_openid',
                     'is_member']
    """Everything except the password hash."""

    def to_dict(self) -> dict:
        """Account data as returned by ``user/get_user``."""
        data = {field: getattr(self, field) for field in self.PUBLIC_FIELDS}
        if data['regdate'] is not None:
            data['regdate'] = data['regdate'].isoformat()
        return data


class DBBinding(Base):  # type: ignore
    """
    Links a third-party identifier to an account.

    Unbinding sets ``deleted_at`` rather than deleting the row. There is one
    row per ``(uid, type)``; among live rows, ``(type, identifier)`` is
    unique.

    +------------+--------------+------+-----+---------+----------------+
    | Field      | Type         | Null | Key | Default | Extra          |
    +------------+--------------+------+-----+---------+----------------+
    | id         | int unsigned | NO   | PRI | NULL    | auto_increment |
    | uid        | int unsigned | NO   | MUL | 0       |                |
    | type       | varchar(32)  | NO   | MUL |         |                |
    | identifier | varchar(128) | NO   |     |         |                |
    | created_at | datetime     | NO   |     |         |                |
    | updated_at | datetime     | NO   |     |         |                |
    | deleted_at | datetime     | YES  |     | NULL    |                |
    +------------+--------------+------+-----+---------+----------------+
    """

    __tablename__ = 'uc_bindings'
    __table_args__ = (
        UniqueConstraint('uid', 'type', name='uk_uid_type'),
        # MySQL has no partial indexes; there the transaction in
        # ``DatabaseBindingStore.add`` is the only guard.
        Index('uk_live_type_identifier', 'type', 'identifier', unique=True,
              sqlite_where=text('deleted_at IS NULL'),
              postgresql_where=text('deleted_at IS NULL'))
        .ddl_if(dialect=('sqlite', 'postgresql')),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Integer, nullable=False, index=True)
    type = Column(String(32), nullable=False)
    identifier = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
