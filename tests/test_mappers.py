"""Tests for the per-language type mappers."""

import pytest

from llm_forge.errors import UnsupportedConstructError
from llm_forge.ir.models import (
    ArrayType,
    CanonicalSchema,
    Constraints,
    EnumType,
    EnumValue,
    ObjectType,
    PrimitiveKind,
    PropertyDefinition,
    SchemaMetadata,
    TypeReference,
    UnionType,
)
from llm_forge.mappers import LANGUAGES, get_mapper


def _make_user_schema(*extra_types) -> CanonicalSchema:
    user = ObjectType(
        id="User",
        name="User",
        properties=[
            PropertyDefinition(name="id", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True),
            PropertyDefinition(name="bio", type_ref=TypeReference.of(PrimitiveKind.STRING)),
        ],
        required=["id"],
    )
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme"),
        types=[user, *extra_types],
    )


def _map_user(language: str) -> str:
    schema = _make_user_schema()
    return get_mapper(language, schema).map_type(schema.types[0]).code


# --- User model per language ---


def test_python_user():
    code = _map_user("python")
    assert "class User(BaseModel):" in code
    assert "    id: str\n" in code
    assert "    bio: Optional[str] = None" in code


def test_typescript_user():
    code = _map_user("typescript")
    assert "export interface User {" in code
    assert "  id: string;" in code
    assert "  bio?: string;" in code


def test_rust_user():
    code = _map_user("rust")
    assert "pub struct User {" in code
    assert "    pub id: String," in code
    assert '    #[serde(default, skip_serializing_if = "Option::is_none")]\n    pub bio: Option<String>,' in code


def test_go_user():
    code = _map_user("go")
    assert "type User struct {" in code
    assert '\tId string `json:"id"`' in code
    assert '\tBio *string `json:"bio,omitempty"`' in code


def test_java_user():
    code = _map_user("java")
    assert "public final class User {" in code
    assert "    private final String id;" in code
    assert "    private final @Nullable String bio;" in code
    assert '@JsonProperty("id")' in code
    assert "@NotNull" in code


def test_csharp_user():
    code = _map_user("csharp")
    assert "public sealed record User" in code
    assert "    public required string Id { get; init; }" in code
    assert "    public string? Bio { get; init; }" in code
    assert '[JsonPropertyName("id")]' in code
    assert "[Required]" in code


@pytest.mark.parametrize("language", LANGUAGES)
def test_mapping_is_deterministic(language):
    assert _map_user(language) == _map_user(language)


@pytest.mark.parametrize("language", LANGUAGES)
def test_user_mapped_type_metadata(language):
    schema = _make_user_schema()
    mapped = get_mapper(language, schema).map_type(schema.types[0])
    assert mapped.name == "User"
    assert mapped.dependencies == []
    assert mapped.code.endswith("\n")


# --- References ---


def test_reference_rendering():
    schema = _make_user_schema(ArrayType(id="UserList", name="UserList", items=TypeReference.to("User")))
    expected = {
        "python": "list[User]",
        "typescript": "User[]",
        "rust": "Vec<User>",
        "go": "[]User",
        "java": "List<User>",
        "csharp": "List<User>",
    }
    for language, text in expected.items():
        assert get_mapper(language, schema).map_type_reference(TypeReference.to("UserList")) == text


def test_nullable_wrapper_applied_once():
    mapper = get_mapper("python", _make_user_schema())
    ref = TypeReference.of(PrimitiveKind.INTEGER, nullable=True)
    assert mapper.map_type_reference(ref, optional=True) == "Optional[int]"


def test_object_dependencies():
    team = ObjectType(
        id="Team",
        name="Team",
        properties=[PropertyDefinition(name="owner", type_ref=TypeReference.to("User"), required=True)],
        required=["owner"],
    )
    schema = _make_user_schema(team)
    mapped = get_mapper("python", schema).map_type(team)
    assert mapped.dependencies == ["User"]
    assert "    owner: User" in mapped.code


def test_unresolved_reference_raises():
    mapper = get_mapper("rust", _make_user_schema())
    with pytest.raises(UnsupportedConstructError) as exc_info:
        mapper.map_type_reference(TypeReference.to("Missing"))
    assert exc_info.value.code == "unresolved_reference"


def test_empty_reference_raises():
    mapper = get_mapper("go", _make_user_schema())
    with pytest.raises(UnsupportedConstructError):
        mapper.map_type_reference(TypeReference())


def test_unknown_language():
    with pytest.raises(ValueError):
        get_mapper("cobol", _make_user_schema())


# --- Enums, unions and constraints ---


def test_python_enum():
    role = EnumType(id="Role", name="Role", values=[EnumValue("user"), EnumValue("assistant")])
    schema = _make_user_schema(role)
    code = get_mapper("python", schema).map_type(role).code
    assert "class Role(str, Enum):" in code
    assert "    USER = 'user'" in code
    assert "    ASSISTANT = 'assistant'" in code


def test_typescript_discriminated_union():
    text = ObjectType(
        id="TextBlock",
        name="TextBlock",
        properties=[PropertyDefinition(name="type", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True)],
        required=["type"],
    )
    image = ObjectType(
        id="ImageBlock",
        name="ImageBlock",
        properties=[PropertyDefinition(name="type", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True)],
        required=["type"],
    )
    block = UnionType(
        id="Block",
        name="Block",
        variants=[TypeReference.to("TextBlock"), TypeReference.to("ImageBlock")],
        discriminator="type",
        discriminator_mapping={"text": "TextBlock", "image": "ImageBlock"},
    )
    schema = _make_user_schema(text, image, block)
    mapper = get_mapper("typescript", schema)
    assert "export type Block = TextBlock | ImageBlock;" in mapper.map_type(block).code
    assert '  type: "text";' in mapper.map_type(text).code


def test_python_field_constraints():
    prompt = ObjectType(
        id="Prompt",
        name="Prompt",
        properties=[
            PropertyDefinition(
                name="maxTokens",
                type_ref=TypeReference.of(PrimitiveKind.INTEGER),
                required=True,
                constraints=Constraints(minimum=1, maximum=4096),
            )
        ],
        required=["maxTokens"],
    )
    code = get_mapper("python", _make_user_schema(prompt)).map_type(prompt).code
    assert "max_tokens: int = Field(alias='maxTokens', ge=1, le=4096)" in code


def test_duplicate_type_names_are_disambiguated():
    other = ObjectType(id="User_2", name="User")
    schema = _make_user_schema(other)
    mapper = get_mapper("java", schema)
    assert mapper.type_name("User") == "User"
    assert mapper.type_name("User_2") == "User2"


# --- Discriminated unions across languages ---


def _make_pet_schema(mapping: dict[str, str]) -> CanonicalSchema:
    def animal(name: str) -> ObjectType:
        return ObjectType(
            id=name,
            name=name,
            properties=[
                PropertyDefinition(name="kind", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True),
                PropertyDefinition(name="name", type_ref=TypeReference.of(PrimitiveKind.STRING), required=True),
            ],
            required=["kind", "name"],
        )

    pet = UnionType(
        id="Pet",
        name="Pet",
        variants=[TypeReference.to("Cat"), TypeReference.to("Dog")],
        discriminator="kind",
        discriminator_mapping=mapping,
    )
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme"),
        types=[animal("Cat"), animal("Dog"), pet],
    )


def _map_pets(language: str, mapping: dict[str, str]) -> dict[str, str]:
    schema = _make_pet_schema(mapping)
    mapper = get_mapper(language, schema)
    return {t.id: mapper.map_type(t).code for t in schema.types}


_PET_MAPPING = {"cat": "Cat", "dog": "Dog"}


def test_python_tagged_union_literals():
    code = _map_pets("python", _PET_MAPPING)
    assert "kind: Literal['cat'] = Field(default='cat')" in code["Cat"]
    assert "kind: Literal['dog'] = Field(default='dog')" in code["Dog"]
    assert "Pet = Annotated[Union[Cat, Dog], Field(discriminator='kind')]" in code["Pet"]


def test_rust_tagged_union_literals():
    code = _map_pets("rust", _PET_MAPPING)
    assert '#[serde(tag = "kind")]' in code["Pet"]
    assert '    #[serde(rename = "cat")]\n    Cat(Cat),' in code["Pet"]
    assert '    #[serde(rename = "dog")]\n    Dog(Dog),' in code["Pet"]
    assert "pub kind" not in code["Cat"]


def test_go_tagged_union_literals():
    code = _map_pets("go", _PET_MAPPING)["Pet"]
    assert '\tcase "cat":' in code
    assert '\tcase "dog":' in code
    assert '\t\tTag string `json:"kind"`' in code


def test_java_tagged_union_literals():
    code = _map_pets("java", _PET_MAPPING)
    assert '@JsonSubTypes.Type(value = Cat.class, name = "cat")' in code["Pet"]
    assert '@JsonSubTypes.Type(value = Dog.class, name = "dog")' in code["Pet"]
    assert "public final class Cat implements Pet {" in code["Cat"]
    assert "private final String kind;" in code["Cat"]


def test_csharp_tagged_union_literals():
    code = _map_pets("csharp", _PET_MAPPING)["Pet"]
    assert 'public const string DiscriminatorProperty = "kind";' in code
    assert 'Discriminator == "cat" ? Raw.Deserialize<Cat>() : null;' in code
    assert 'Discriminator == "dog" ? Raw.Deserialize<Dog>() : null;' in code


def test_partial_mapping_keeps_the_tag_field():
    # Dog has no literal, so the union cannot be tagged and Cat must carry its own tag.
    schema = _make_pet_schema({"cat": "Cat"})
    mapper = get_mapper("rust", schema)
    pet, cat = schema.types[2], schema.types[0]
    assert not mapper.is_tagged_union(pet)
    assert mapper.enclosing_tags("Cat") == set()
    assert "#[serde(untagged)]" in mapper.map_type(pet).code
    assert "    pub kind: String," in mapper.map_type(cat).code
    assert "kind: Literal['cat']" in get_mapper("python", schema).map_type(cat).code


def test_tag_field_kept_when_any_enclosing_union_is_untagged():
    schema = _make_pet_schema(_PET_MAPPING)
    loose = UnionType(
        id="Loose",
        name="Loose",
        variants=[TypeReference.to("Cat"), TypeReference.of(PrimitiveKind.STRING)],
        discriminator="kind",
        discriminator_mapping={"cat": "Cat"},
    )
    schema.types.append(loose)
    mapper = get_mapper("rust", schema)
    assert mapper.enclosing_tags("Cat") == set()
    assert mapper.enclosing_tags("Dog") == {"kind"}
    assert "    pub kind: String," in mapper.map_type(schema.types[0]).code


# --- Recursive types ---


def _make_cycle_schema() -> CanonicalSchema:
    node = ObjectType(
        id="Node",
        name="Node",
        properties=[
            PropertyDefinition(name="edge", type_ref=TypeReference.to("Edge"), required=True),
            PropertyDefinition(name="children", type_ref=TypeReference.to("NodeList")),
        ],
        required=["edge"],
    )
    edge = ObjectType(
        id="Edge",
        name="Edge",
        properties=[PropertyDefinition(name="target", type_ref=TypeReference.to("Node"))],
    )
    children = ArrayType(id="NodeList", name="NodeList", items=TypeReference.to("Node"))
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme"),
        types=[node, edge, children],
    )


def test_rust_boxes_indirect_cycles():
    schema = _make_cycle_schema()
    mapper = get_mapper("rust", schema)
    node = mapper.map_type(schema.types[0]).code
    edge = mapper.map_type(schema.types[1]).code
    assert "    pub edge: Box<Edge>," in node
    assert "    pub children: Option<Vec<Node>>," in node
    assert "    pub target: Option<Box<Node>>," in edge


def test_go_points_through_indirect_cycles():
    schema = _make_cycle_schema()
    mapper = get_mapper("go", schema)
    assert '\tEdge *Edge `json:"edge"`' in mapper.map_type(schema.types[0]).code


def test_reaches():
    mapper = get_mapper("rust", _make_cycle_schema())
    assert mapper.reaches(TypeReference.to("Edge"), "Node")
    assert not mapper.reaches(TypeReference.of(PrimitiveKind.STRING), "Node")


# --- Enum and unique-items constraints ---


def _make_settings_schema() -> CanonicalSchema:
    settings = ObjectType(
        id="Settings",
        name="Settings",
        properties=[
            PropertyDefinition(
                name="mode",
                type_ref=TypeReference.of(PrimitiveKind.STRING),
                required=True,
                constraints=Constraints(enum=["fast", "slow"]),
            ),
            PropertyDefinition(
                name="level",
                type_ref=TypeReference.of(PrimitiveKind.INTEGER),
                required=True,
                constraints=Constraints(enum=[1, 2]),
            ),
            PropertyDefinition(name="tags", type_ref=TypeReference.to("TagList"), required=True),
        ],
        required=["mode", "level", "tags"],
    )
    tags = ArrayType(id="TagList", name="TagList", items=TypeReference.of(PrimitiveKind.STRING), unique_items=True)
    return CanonicalSchema(
        metadata=SchemaMetadata(provider_id="acme", provider_name="Acme"),
        types=[settings, tags],
    )


def _map_settings(language: str):
    schema = _make_settings_schema()
    return get_mapper(language, schema).map_type(schema.types[0])


def test_go_enum_and_unique_guards():
    mapped = _map_settings("go")
    assert '!slices.Contains([]string{"fast", "slow"}, v.Mode)' in mapped.code
    assert "!slices.Contains([]float64{1, 2}, float64(v.Level))" in mapped.code
    assert "for _, item := range v.Tags" in mapped.code
    assert 'fmt.Errorf("Mode: violates enum %v", "fast, slow")' in mapped.code
    assert "slices" in mapped.imports
    assert "fmt" in mapped.imports


def test_java_enum_and_unique_checks():
    mapped = _map_settings("java")
    assert '@Pattern(regexp = "^(?:fast|slow)$")' in mapped.code
    assert "java.util.List.of(1L, 2L).contains(level)" in mapped.code
    assert "new java.util.HashSet<>(tags).size() != tags.size()" in mapped.code
    assert "jakarta.validation.constraints.Pattern" in mapped.imports


def test_csharp_enum_and_unique_attributes():
    mapped = _map_settings("csharp")
    assert '[AllowedValues("fast", "slow")]' in mapped.code
    assert "[AllowedValues(1L, 2L)]" in mapped.code
    assert "[CustomValidation(typeof(Settings), nameof(ValidateTagsDistinct))]" in mapped.code
    assert "public static ValidationResult? ValidateTagsDistinct(List<string>? value) =>" in mapped.code
    assert "System.Linq" in mapped.imports


def test_rust_enum_and_unique_guards():
    code = _map_settings("rust").code
    assert '!["fast", "slow"].contains(&self.mode.to_string().as_str())' in code
    assert "self.tags.iter().enumerate().any(|(i, item)| self.tags[..i].contains(item))" in code


# --- Reserved names ---


def test_python_type_names_avoid_imported_names():
    field = ObjectType(id="Field", name="Field")
    schema = _make_user_schema(field)
    assert get_mapper("python", schema).type_name("Field") == "Field2"
    assert get_mapper("typescript", schema).type_name("Field") == "Field"
