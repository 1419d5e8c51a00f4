from beanbase.errors import ArgumentError, BeanBaseError, CrudError, RelationError, ValidationError


class TestErrors:
    def test_message_carries_type(self):
        error = CrudError("Cannot find bean by ID = 1 in type = user", CrudError.READ)
        assert str(error) == "(Error Type - READ) Cannot find bean by ID = 1 in type = user"
        assert error.error_type == "READ"
        assert error.code == 0

    def test_to_dict(self):
        error = RelationError("Parent already exists", RelationError.BELONGS_TO, code=3)
        assert error.to_dict() == {
            "error": "RelationError",
            "type": "BELONGS-TO",
            "message": "Parent already exists",
            "code": 3,
        }

    def test_hierarchy(self):
        assert isinstance(ArgumentError("bad"), ValueError)
        assert issubclass(ValidationError, BeanBaseError)
        assert ValidationError("x", ValidationError.UNIQUE).error_type == "UNIQUE"
