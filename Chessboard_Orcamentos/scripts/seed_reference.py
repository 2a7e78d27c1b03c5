import argparse

from sqlalchemy import select

from Chessboard_Orcamentos.app.db import SessionLocal, init_db
from Chessboard_Orcamentos.app.models import (
    Block,
    CostCategory,
    CostType,
    Documentation,
    DocumentationTag,
    DocumentationVersion,
    Location,
    Project,
    Unit,
)

UNITS = ("m2", "m3", "m", "un", "kg", "t")


def seed_reference(project_name: str, blocks: int = 1) -> int:
    """Cria um projeto de exemplo com listas de referencia minimas. Devolve o id do projeto."""
    init_db()  # garante que as tabelas estão criadas
    db = SessionLocal()
    try:
        project = db.execute(select(Project).where(Project.name == project_name)).scalar_one_or_none()
        if project:
            print(f"Projeto '{project_name}' já existe (id={project.id}).")
            return project.id

        project = Project(name=project_name)
        db.add(project)
        db.flush()

        for name in UNITS:
            if not db.execute(select(Unit).where(Unit.name == name)).scalar_one_or_none():
                db.add(Unit(name=name))

        for idx in range(1, blocks + 1):
            db.add(Block(project_id=project.id, name=f"Bloco {idx}", bottom_underground_floor=-2, top_ground_floor=10))

        location = Location(name="Edificio")
        category = CostCategory(number=1, name="Estrutura")
        db.add_all([location, category])
        db.flush()
        db.add(CostType(cost_category_id=category.id, location_id=location.id, name="Betao armado"))

        tag = DocumentationTag(tag_number=3, name="AR")
        db.add(tag)
        db.flush()
        document = Documentation(project_id=project.id, tag_id=tag.id, code="AR-001", project_name="Arquitetura")
        db.add(document)
        db.flush()
        db.add(DocumentationVersion(documentation_id=document.id, version_number=1))

        db.commit()
        print(f"Projeto '{project_name}' criado com sucesso (id={project.id}).")
        return project.id
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Seed inicial de dados de referencia para a tabela")
    parser.add_argument("--project", required=True, help="Nome do projeto")
    parser.add_argument("--blocks", type=int, default=1, help="Numero de blocos (default=1)")

    args = parser.parse_args()
    seed_reference(args.project, args.blocks)


if __name__ == "__main__":
    main()
