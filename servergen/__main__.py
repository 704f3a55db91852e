from servergen.pipeline import main

main()
